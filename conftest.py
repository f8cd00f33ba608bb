"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides the
fixtures shared by the test modules.
"""
import io
import os
import sys

import pandas as pd
import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from models import Row, RunState  # noqa: E402


@pytest.fixture
def make_xlsx():
    """
    Fixture providing a builder for in-memory xlsx uploads.

    Returns:
        callable: make_xlsx(values, header="Number") -> bytes, with ``values`` in the first column
    """
    def _make_xlsx(values, header="Number"):
        buffer = io.BytesIO()
        pd.DataFrame({header: values}).to_excel(buffer, index=False)
        return buffer.getvalue()
    return _make_xlsx


@pytest.fixture
def sample_numbers():
    """
    Fixture providing a short ordered list of phone numbers.

    Returns:
        list: Phone numbers as strings
    """
    return ["923001234567", "923001234568", "923001234569", "447700900123"]


@pytest.fixture
def sample_rows(sample_numbers):
    """
    Fixture providing unchecked rows for the sample numbers.

    Returns:
        list: Row objects in input order
    """
    return [Row(number=number) for number in sample_numbers]


@pytest.fixture
def sample_run_state(sample_rows):
    """
    Fixture providing an idle RunState holding the sample rows.

    Returns:
        RunState: A freshly ingested session
    """
    return RunState(rows=sample_rows, source_filename="numbers.xlsx")
