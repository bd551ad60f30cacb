"""
Report Export Verification Script

Checks the workbook written by the report export task.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dinein.services.excel_manager import ExcelManager

REQUIRED_SHEETS = ["summary", "daily", "top_dishes", "statuses", "categories"]


def verify_export() -> bool:
    manager = ExcelManager()

    print("=" * 60)
    print("REPORT EXPORT VERIFICATION")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {manager.report_file}")
    print("=" * 60)

    if not manager.report_file.exists():
        print("\nWorkbook not found!")
        print("   Queue an export first: POST /api/reports/export")
        return False

    sheets = {name: manager.read_sheet(name) for name in REQUIRED_SHEETS}

    summary = sheets["summary"]
    if not summary:
        print("\nSummary sheet missing or empty")
        return False

    row = summary[0]
    print("\nSUMMARY:")
    print(f"   Revenue: {row['total_revenue']:,.0f}")
    print(f"   Orders: {row['total_orders']} ({row['completed_orders']} completed)")
    print(f"   Completion Rate: {row['completion_rate']}%")
    print(f"   Exported At: {row['exported_at']}")

    # Daily revenue must add up to the headline figure
    daily_total = sum(float(r["revenue"]) for r in sheets["daily"])
    if abs(daily_total - float(row["total_revenue"])) > 0.01:
        print(f"\nDaily revenue {daily_total:,.2f} does not match total {row['total_revenue']:,.2f}")
        return False
    print("\nDaily revenue matches total")

    status_total = sum(int(r["count"]) for r in sheets["statuses"])
    if status_total != int(row["total_orders"]):
        print(f"\nStatus counts {status_total} do not match order total {row['total_orders']}")
        return False
    print("Status counts match order total")

    print("\nTOP DISHES:")
    for dish in sheets["top_dishes"]:
        print(f"   {dish['name']}: {dish['count']}")

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE")
    print("=" * 60)
    return True


if __name__ == "__main__":
    sys.exit(0 if verify_export() else 1)
