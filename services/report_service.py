"""
Report service: CSV projection of upload results.
"""

import csv
from datetime import date
from io import StringIO
from typing import Iterable, Optional

from models.upload import AttachmentResult

REPORT_HEADER = ["Filename", "Status", "Message"]


def build_csv_report(results: Iterable[AttachmentResult]) -> str:
    """
    Header row, then one fully double-quoted row per result.

    Example:
        Filename,Status,Message
        "ABC123.jpg","success","Image set as featured"
    """
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(REPORT_HEADER) + "\n")
    for result in results:
        writer.writerow([result.filename, result.status.value, result.message])
    return buffer.getvalue()


def report_filename(report_date: Optional[date] = None) -> str:
    """Download name, e.g. image2sku-report-2025-01-31.csv"""
    return f"image2sku-report-{(report_date or date.today()).isoformat()}.csv"
