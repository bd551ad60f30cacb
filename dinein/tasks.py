"""
Celery Tasks
Background jobs that should not hold up an API request.
"""

import logging
import time

from dinein.celery_worker import celery_app
from dinein.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_sales_report(self, report_data: dict) -> dict:
    """
    Write a sales report to the Excel workbook.

    Args:
        report_data: SalesReport serialized with model_dump(mode="json")

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting sales report ({report_data.get('total_orders', 0)} orders)")
    start_time = time.time()

    result = ExcelManager().export_sales_report(report_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: report exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: export failed - {result['message']}")

    return result
