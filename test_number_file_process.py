import io
from http import HTTPStatus
from unittest.mock import patch

import pandas as pd
import pytest
from openpyxl import Workbook

import number_file_process
from models import ErrorCode
from number_file_process import MAX_ROWS, NumberFileProcessor, cell_to_text, ingest, skip_leading_blank


class TestIngestExcel:
    """
    Tests for ingesting Excel uploads.
    """

    def test_rows_follow_input_order_and_skip_header(self, make_xlsx, sample_numbers):
        """
        Test that every number below the header becomes one row, in order.

        Args:
            make_xlsx: Fixture building xlsx bytes
            sample_numbers: Fixture providing phone numbers
        """
        result = ingest(make_xlsx(sample_numbers), "numbers.xlsx")

        assert result.is_success()
        assert [row.number for row in result.data] == sample_numbers
        assert all(row.status is None and row.error is None for row in result.data)
        assert not any(row.is_processing for row in result.data)

    def test_blank_and_missing_cells_are_skipped(self, make_xlsx):
        """
        Test that empty or whitespace-only first cells are silently dropped.
        """
        values = ["  923001234567 ", None, "   ", "923001234568"]

        result = ingest(make_xlsx(values), "numbers.xlsx")

        assert result.is_success()
        assert [row.number for row in result.data] == ["923001234567", "923001234568"]

    def test_numeric_cells_have_no_decimal_suffix(self, make_xlsx):
        """
        Test that numbers stored as numeric cells are rendered as plain digits.
        """
        result = ingest(make_xlsx([923001234567, 447700900123]), "numbers.xlsx")

        assert [row.number for row in result.data] == ["923001234567", "447700900123"]

    def test_only_first_column_is_read(self):
        """
        Test that columns after the first are ignored.
        """
        buffer = io.BytesIO()
        pd.DataFrame({
            "Number": ["923001234567", "923001234568"],
            "Name": ["Ali", "Sara"]
        }).to_excel(buffer, index=False)

        result = ingest(buffer.getvalue(), "numbers.xlsx")

        assert [row.number for row in result.data] == ["923001234567", "923001234568"]

    def test_blank_rows_above_header_are_skipped(self):
        """
        Test that the header is the first non-blank row, not the sheet's first row.

        A sheet whose data starts lower down must not ingest its header as a number.
        """
        workbook = Workbook()
        sheet = workbook.active
        sheet["A3"] = "Number"
        sheet["B3"] = "Name"
        sheet["A4"] = "923001234567"
        sheet["A5"] = "923001234568"
        buffer = io.BytesIO()
        workbook.save(buffer)

        result = ingest(buffer.getvalue(), "numbers.xlsx")

        assert result.is_success()
        assert [row.number for row in result.data] == ["923001234567", "923001234568"]

    def test_header_only_file_yields_no_rows(self, make_xlsx):
        """
        Test that a sheet holding just a header produces an empty row list.
        """
        result = ingest(make_xlsx([]), "numbers.xlsx")

        assert result.is_success()
        assert result.data == []


class TestIngestCsv:
    """
    Tests for ingesting CSV uploads.
    """

    def test_csv_first_column_with_ragged_rows(self):
        """
        Test that CSV rows of different widths are read by their first cell.
        """
        content = "Number\n923001234567,Ali\n\n 923001234568 \n,orphan\n923001234569,Sara,extra\n"

        result = ingest(content.encode("utf-8"), "numbers.csv")

        assert result.is_success()
        assert [row.number for row in result.data] == ["923001234567", "923001234568", "923001234569"]

    @pytest.mark.parametrize(
        "content",
        ["\n\nNumber\n923001234567\n", ",,\n , \nNumber,Name\n923001234567,Ali\n"],
        ids=["empty-lines", "empty-cells"]
    )
    def test_blank_lines_above_header_are_skipped(self, content):
        """
        Test that leading blank records do not shift the header into the data.

        Args:
            content: CSV text with blank records before the header
        """
        result = ingest(content.encode("utf-8"), "numbers.csv")

        assert result.is_success()
        assert [row.number for row in result.data] == ["923001234567"]

    def test_csv_with_byte_order_mark(self):
        """
        Test that a UTF-8 BOM does not leak into the data.
        """
        content = "\ufeffNumber\n923001234567\n"

        result = ingest(content.encode("utf-8"), "numbers.CSV")

        assert [row.number for row in result.data] == ["923001234567"]


class TestIngestRowCap:
    """
    Tests for the maximum row count guard.
    """

    def test_exactly_max_rows_is_accepted(self):
        """
        Test that an upload at the cap is accepted in full.
        """
        content = "Number\n" + "\n".join(str(920000000000 + i) for i in range(MAX_ROWS))

        result = ingest(content.encode("utf-8"), "numbers.csv")

        assert result.is_success()
        assert len(result.data) == MAX_ROWS
        assert result.data[0].number == "920000000000"
        assert result.data[-1].number == str(920000000000 + MAX_ROWS - 1)

    def test_over_max_rows_is_rejected_with_count(self):
        """
        Test that one row over the cap fails with TOO_MANY_ROWS and the row count.
        """
        count = MAX_ROWS + 1
        content = "Number\n" + "\n".join(str(920000000000 + i) for i in range(count))

        result = ingest(content.encode("utf-8"), "numbers.csv")

        assert result.is_failure()
        assert result.code == ErrorCode.TOO_MANY_ROWS.value
        assert result.status_code == HTTPStatus(413)
        assert result.meta["count"] == count
        assert str(count) in result.error

    def test_blank_rows_do_not_count_towards_cap(self):
        """
        Test that skipped blank rows are not counted.
        """
        lines = []
        for i in range(MAX_ROWS):
            lines.append(str(920000000000 + i))
            lines.append("")
        content = "Number\n" + "\n".join(lines)

        result = ingest(content.encode("utf-8"), "numbers.csv")

        assert result.is_success()
        assert len(result.data) == MAX_ROWS


class TestIngestErrors:
    """
    Tests for uploads that cannot be ingested.
    """

    @pytest.mark.parametrize(
        "file_bytes, filename, expected_code",
        [
            (b"", "numbers.xlsx", ErrorCode.EMPTY_FILE),
            (b"Number\n1\n", "numbers.txt", ErrorCode.UNSUPPORTED_FILE),
            (b"Number\n1\n", None, ErrorCode.UNSUPPORTED_FILE),
            (b"this is not a workbook", "numbers.xlsx", ErrorCode.MALFORMED_FILE),
            (b"\xff\xfe\x00bad", "numbers.csv", ErrorCode.MALFORMED_FILE),
        ],
        ids=["empty", "wrong-extension", "no-filename", "corrupt-xlsx", "undecodable-csv"]
    )
    def test_rejected_uploads(self, file_bytes, filename, expected_code):
        """
        Test that unusable uploads fail with a 400 and the matching error code.

        Args:
            file_bytes: Upload content
            filename: Upload name
            expected_code: Error code the ingest should report
        """
        result = ingest(file_bytes, filename)

        assert result.is_failure()
        assert result.code == expected_code.value
        assert result.status_code == HTTPStatus.BAD_REQUEST

    def test_rejection_is_logged_once(self):
        """
        Test that a rejected upload is reported through a single warning carrying its error code.
        """
        with patch.object(number_file_process.logger, 'warning') as mock_warning:
            result = ingest(b"Number\n923001234567\n", "numbers.txt")

        assert result.is_failure()
        mock_warning.assert_called_once()
        assert mock_warning.call_args.kwargs["extra"]["error_code"] == ErrorCode.UNSUPPORTED_FILE.value

    def test_unexpected_exception_returns_server_error(self):
        """
        Test that an unexpected error inside the ingest is reported, not raised.
        """
        with patch.object(NumberFileProcessor, '_extract_rows', side_effect=RuntimeError("boom")), \
             patch.object(number_file_process.logger, 'exception'):
            result = ingest(b"Number\n923001234567\n", "numbers.csv")

        assert result.is_failure()
        assert result.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
        assert "boom" in result.error


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (float("nan"), ""),
        (923001234567.0, "923001234567"),
        (923001234567, "923001234567"),
        ("  +92 300 1234567 ", "+92 300 1234567"),
        (12.5, "12.5"),
    ],
    ids=["none", "nan", "integral-float", "int", "padded-string", "fractional-float"]
)
def test_cell_to_text(value, expected):
    """
    Test rendering of individual spreadsheet cells.

    Args:
        value: Raw cell value
        expected: Expected trimmed text
    """
    assert cell_to_text(value) == expected


@pytest.mark.parametrize(
    "records, first_kept",
    [
        ([[None], ["Number"], ["1"]], 1),
        ([[], ["", "  "], ["Number"]], 2),
        ([[float("nan"), "Number"], ["1", None]], 0),
        ([["Number"], [], ["1"]], 0),
        ([[], [None]], None),
        ([], None),
    ],
    ids=["blank-first-row", "empty-records", "value-past-first-cell", "inner-blank-kept", "all-blank", "no-records"]
)
def test_skip_leading_blank(records, first_kept):
    """
    Test that only the records above the first non-blank one are dropped.

    Args:
        records: Raw sheet records
        first_kept: Index of the first record kept, None when nothing is kept
    """
    expected = [] if first_kept is None else records[first_kept:]

    assert skip_leading_blank(records) == expected
