"""
Excel File Manager with Concurrency Control

Writes the sales report workbook. Several Celery workers may export at
once, so every write happens under a file lock.

Sheets:
    summary, daily, top_dishes, statuses, categories
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from dinein.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """File-locked Excel writer for sales reports."""

    def __init__(self, data_directory: str = None, filename: str = None, lock_timeout: int = None):
        settings = get_settings()
        self.data_dir = Path(data_directory or settings.data_directory)
        self.report_file = self.data_dir / (filename or settings.report_filename)
        self.lock_file = self.data_dir / f"{self.report_file.name}.lock"
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    @staticmethod
    def _sheets(report: dict[str, Any], exported_at: str) -> dict[str, pd.DataFrame]:
        summary = pd.DataFrame([{
            "total_revenue": float(report.get("total_revenue", 0)),
            "total_orders": report.get("total_orders", 0),
            "completed_orders": report.get("completed_orders", 0),
            "completion_rate": report.get("completion_rate", 0),
            "exported_at": exported_at,
        }])
        daily = pd.DataFrame(report.get("daily", []), columns=["date", "revenue", "orders"])
        daily["revenue"] = daily["revenue"].astype(float)
        top_dishes = pd.DataFrame(report.get("top_dishes", []), columns=["name", "count"])
        statuses = pd.DataFrame(
            sorted(report.get("status_breakdown", {}).items()),
            columns=["status", "count"],
        )
        categories = pd.DataFrame(report.get("categories", []), columns=["name", "count"])

        return {
            "summary": summary,
            "daily": daily,
            "top_dishes": top_dishes,
            "statuses": statuses,
            "categories": categories,
        }

    def export_sales_report(self, report: dict[str, Any]) -> dict[str, Any]:
        """Write the report workbook, replacing the previous export."""
        self._ensure_data_dir()

        result = {
            "success": False,
            "message": "",
            "path": str(self.report_file),
            "exported_at": None,
        }

        try:
            with FileLock(str(self.lock_file), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for {self.report_file}")

                export_time = datetime.now().isoformat()
                with pd.ExcelWriter(str(self.report_file), engine="openpyxl") as writer:
                    for name, frame in self._sheets(report, export_time).items():
                        frame.to_excel(writer, sheet_name=name, index=False)

                logger.info(f"Sales report exported to {self.report_file}")
                result["success"] = True
                result["message"] = "Sales report exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for {self.report_file}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting sales report to {self.report_file}")

        return result

    def read_sheet(self, sheet_name: str) -> list[dict[str, Any]]:
        """Rows of one sheet of the last export, or [] if there is none."""
        if not self.report_file.exists():
            return []
        try:
            frame = pd.read_excel(self.report_file, sheet_name=sheet_name, engine="openpyxl")
            return frame.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading {sheet_name} from {self.report_file}: {e}")
            return []
