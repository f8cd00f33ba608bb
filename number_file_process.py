import csv
import io
import os
import logging
import time
import uuid
from typing import Any, List, Optional

import pandas as pd

from models import ErrorCode, Row
from utils.result import Result

logger = logging.getLogger(__name__)

MAX_ROWS = 5000
SUPPORTED_EXTENSIONS = (".csv", ".xls", ".xlsx")


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.get('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={**self.extra, "request_id": self.request_id})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={**self.extra, "request_id": self.request_id, "duration": duration},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={**self.extra, "request_id": self.request_id, "duration": duration}
            )


class NumberFileProcessor:
    """
    Turns an uploaded spreadsheet into the ordered list of rows to validate.

    The first sheet is read, its first row is treated as a header and dropped,
    and the first cell of every remaining row becomes one phone number. Rows
    whose first cell is missing or blank are skipped silently.
    """

    @staticmethod
    def ingest(file_bytes: bytes, filename: Optional[str]) -> Result[List[Row]]:
        """
        Parse an uploaded CSV/XLS/XLSX file into rows.

        Args:
            file_bytes: Raw content of the upload
            filename: Client-side file name, used to pick the parser

        Returns:
            Result[List[Row]]: The rows in input order, or a failure carrying one of
            EMPTY_FILE, UNSUPPORTED_FILE, MALFORMED_FILE or TOO_MANY_ROWS
        """
        request_id = str(uuid.uuid4())[:8]
        log_context = {
            "request_id": request_id,
            "upload_name": filename,
            "size_bytes": len(file_bytes or b"")
        }

        logger.info("Ingesting uploaded number file", extra=log_context)

        try:
            with LogContext("sheet parsing", **log_context):
                column_result = NumberFileProcessor._read_first_column(file_bytes, filename)

            with LogContext("row extraction", **log_context):
                rows_result = column_result.and_then(NumberFileProcessor._extract_rows)

            result = rows_result.and_then(NumberFileProcessor._enforce_row_cap).on_failure(
                lambda rejected: logger.warning(
                    f"Ingest rejected: {rejected.error}",
                    extra={**log_context, "error_code": rejected.code}
                )
            )
            if result.is_success():
                logger.info(f"Ingested {len(result.data)} numbers", extra=log_context)
            return result

        except Exception as e:
            logger.exception("Unexpected error during ingest", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Processing error: {str(e)}")

    @staticmethod
    def _read_first_column(file_bytes: bytes, filename: Optional[str]) -> Result[List[Any]]:
        """
        Read the first column of the first sheet, header row included.

        Args:
            file_bytes: Raw content of the upload
            filename: Client-side file name

        Returns:
            Result containing the raw cell values or a parse error
        """
        if not file_bytes:
            return Result.invalid_input("Uploaded file is empty", code=ErrorCode.EMPTY_FILE.value)

        extension = os.path.splitext(filename or "")[1].lower()
        if extension not in SUPPORTED_EXTENSIONS:
            return Result.invalid_input(
                f"Unsupported file type '{extension or filename or 'unknown'}'. Upload a CSV, XLS or XLSX file",
                code=ErrorCode.UNSUPPORTED_FILE.value
            )

        try:
            start_time = time.time()
            if extension == ".csv":
                values = NumberFileProcessor._read_csv_column(file_bytes)
            else:
                values = NumberFileProcessor._read_excel_column(file_bytes)
            logger.debug(
                "Read first column",
                extra={"cell_count": len(values), "read_time_seconds": f"{time.time() - start_time:.2f}"}
            )
            return Result.ok(values)
        except Exception as e:
            logger.error(
                "Failed to read spreadsheet",
                extra={"upload_name": filename, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.fail(
                f"Failed to read spreadsheet: {str(e)}",
                code=ErrorCode.MALFORMED_FILE.value
            )

    @staticmethod
    def _read_csv_column(file_bytes: bytes) -> List[Any]:
        text = file_bytes.decode("utf-8-sig")
        records = skip_leading_blank(list(csv.reader(io.StringIO(text))))
        return [record[0] if record else None for record in records]

    @staticmethod
    def _read_excel_column(file_bytes: bytes) -> List[Any]:
        df = pd.read_excel(io.BytesIO(file_bytes), sheet_name=0, header=None, dtype=object)
        if df.shape[1] == 0:
            return []
        records = skip_leading_blank(df.values.tolist())
        return [record[0] for record in records]

    @staticmethod
    def _extract_rows(values: List[Any]) -> Result[List[Row]]:
        """
        Drop the header cell and build one Row per non-blank cell.

        Args:
            values: First-column cells, header first

        Returns:
            Result containing the rows in input order
        """
        rows = []
        for value in values[1:]:
            number = cell_to_text(value)
            if number:
                rows.append(Row(number=number))
        return Result.ok(rows)

    @staticmethod
    def _enforce_row_cap(rows: List[Row]) -> Result[List[Row]]:
        if len(rows) > MAX_ROWS:
            return Result.fail(
                f"Too many rows: {len(rows)}. At most {MAX_ROWS} numbers can be validated per upload",
                status_code=413,
                code=ErrorCode.TOO_MANY_ROWS.value,
                meta={"count": len(rows), "max_rows": MAX_ROWS}
            )
        return Result.ok(rows)


def cell_to_text(value: Any) -> str:
    """
    Render a spreadsheet cell as a trimmed string.

    Excel stores phone numbers as floats more often than not, so integral
    floats lose their trailing ".0". Missing cells become "".
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def skip_leading_blank(records: List[List[Any]]) -> List[List[Any]]:
    """
    Drop the blank records above the first one holding any value.

    The header is the first non-blank record of the sheet, wherever it sits.
    """
    for index, record in enumerate(records):
        if any(cell_to_text(cell) for cell in record):
            return records[index:]
    return []


def ingest(file_bytes: bytes, filename: Optional[str]) -> Result[List[Row]]:
    return NumberFileProcessor.ingest(file_bytes, filename)
