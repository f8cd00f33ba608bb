"""
WhatsApp Number Validator

This package provides an API that checks spreadsheets of phone numbers
against a WhatsApp number lookup provider and exports the annotated results.

Key modules:
- main.py: FastAPI application with API endpoints
- number_file_process.py: Spreadsheet ingest (first column, header skipped, row cap)
- validation_proxy.py: Pass-through client for the lookup provider
- validation_pipeline.py: Sequential validation run with progress and credential-error halt
- results_presenter.py: Pagination and xlsx export
- utils/result.py: Result pattern implementation for error handling
"""
