import io
import logging
import math
from typing import List

import pandas as pd

from models import PageView, Row

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
PAGE_WINDOW_SIZE = 5
EXPORT_FILENAME = "whatsapp-validation-results.xlsx"
EXPORT_SHEET_NAME = "Validation Results"
EXPORT_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_COLUMNS = ["Number", "Status", "Error"]


def page_count(total_rows: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total_rows / page_size) if total_rows > 0 else 0


def page_window(current_page: int, total_pages: int, width: int = PAGE_WINDOW_SIZE) -> List[int]:
    """
    Page numbers shown by the compact pager.

    Up to ``width`` pages centred on the current one, sliding at either end:
    the first pages show 1..5, the last pages show the final five.

    Args:
        current_page: Page being displayed
        total_pages: Number of pages available
        width: Maximum number of page links

    Returns:
        List[int]: Consecutive page numbers, empty when there are no pages
    """
    if total_pages <= width:
        return list(range(1, total_pages + 1))

    half = width // 2
    if current_page <= half + 1:
        first = 1
    elif current_page >= total_pages - half:
        first = total_pages - width + 1
    else:
        first = current_page - half
    return list(range(first, first + width))


def page(rows: List[Row], page_size: int, page_number: int) -> PageView:
    """
    Slice one page of rows for display.

    Page numbers outside [1, page_count] produce an empty page; clamping is
    left to the caller.

    Args:
        rows: All rows of the run, in input order
        page_size: Rows per page
        page_number: 1-based page to show

    Returns:
        PageView: The page's rows plus paging metadata
    """
    total = len(rows)
    pages = page_count(total, page_size)
    start_index = (page_number - 1) * page_size
    page_rows = rows[start_index:start_index + page_size] if page_number >= 1 else []

    return PageView(
        page_number=page_number,
        page_size=page_size,
        page_count=pages,
        total_rows=total,
        start_index=max(start_index, 0),
        rows=page_rows,
        window=page_window(page_number, pages)
    )


def export_rows(rows: List[Row]) -> List[dict]:
    # Unchecked rows export as "Invalid"
    return [
        {
            "Number": row.number,
            "Status": "Valid" if row.status else "Invalid",
            "Error": row.error or ""
        }
        for row in rows
    ]


def export(rows: List[Row]) -> bytes:
    """
    Serialize every row into an xlsx workbook.

    Args:
        rows: All rows of the run, in input order

    Returns:
        bytes: Workbook content with a single "Validation Results" sheet
    """
    df = pd.DataFrame(export_rows(rows), columns=EXPORT_COLUMNS)
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False, sheet_name=EXPORT_SHEET_NAME, engine="openpyxl")
    logger.info("Exported validation results", extra={"total_rows": len(rows)})
    return buffer.getvalue()
