from fastapi import FastAPI, status, Body, File, Query, UploadFile, BackgroundTasks
import io
import os
import logging
from datetime import datetime
from typing import Optional
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from models import ErrorCode, ResultsResponse, RunRequest, RunState, UploadSummary
from number_file_process import ingest
from results_presenter import EXPORT_FILENAME, EXPORT_MEDIA_TYPE, PAGE_SIZE, export, page, page_count
from utils.result import Result
import validation_pipeline
from validation_proxy import ValidationProxy

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Create logs directory if it doesn't exist
log_dir = settings.log_dir if os.path.isabs(settings.log_dir) else os.path.join(BASE_DIR, settings.log_dir)
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file; attached to the root logger so module loggers share it
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)


# Initialize FastAPI app with metadata
app = FastAPI(
    title=settings.app_name,
    description="Upload phone numbers, check them against the WhatsApp lookup provider and download the results",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# The single in-memory session; replaced wholesale on every successful upload
app.state.run_state = RunState()

validation_proxy = ValidationProxy(settings.provider_url, timeout=settings.provider_timeout)


@app.on_event("shutdown")
async def close_validation_proxy() -> None:
    await validation_proxy.aclose()
    logger.info("Provider client closed")


def error_response(result: Result) -> JSONResponse:
    """
    Build the JSON error response for a failed Result.

    Args:
        result: A failed Result

    Returns:
        JSONResponse with the Result's status code and error body
    """
    return JSONResponse(status_code=result.status_code.value, content=result.to_error_body())


def clamp_page(page_number: int, total_pages: int) -> int:
    """
    Bring a requested page number into [1, total_pages].

    Args:
        page_number: Page asked for by the client
        total_pages: Pages available, possibly 0

    Returns:
        int: A page number that is always at least 1
    """
    if total_pages < 1:
        return 1
    return max(1, min(page_number, total_pages))


# API Endpoints
@app.get("/", tags=["Health"])
async def root():
    return {"message": f"{settings.app_name} ready"}


@app.get(
    "/api/validate",
    tags=["Validation"]
)
async def validate_number(
    number: Optional[str] = Query(None),
    api_key: Optional[str] = Query(None, alias="apiKey")
):
    """
    Check one number with the lookup provider.

    The provider's JSON is passed through untouched, so the body carries
    ``numberstatus`` and possibly ``error`` exactly as the provider sent them.

    Returns:
        - 200 with the provider payload
        - 400 {"error": "Missing required parameters"} when number or apiKey is empty
        - 500 {"error": "Failed to validate number"} when the provider call fails
    """
    result = await validation_proxy.validate(number, api_key)

    if result.is_failure():
        return JSONResponse(status_code=result.status_code.value, content={"error": result.error})
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.data)


@app.post(
    "/api/upload",
    tags=["Numbers"],
    response_model=UploadSummary
)
async def upload_numbers(file: UploadFile = File(...)):
    """
    Ingest a CSV/XLS/XLSX file of phone numbers.

    The first column of the first sheet is read and the header row skipped.
    A successful upload replaces the current session; a rejected one leaves
    it untouched.
    """
    run_state = app.state.run_state
    if run_state.is_running:
        logger.warning("Upload rejected while a validation run is in progress")
        return error_response(
            Result.conflict("Validation is running; wait for it to finish before uploading", code=ErrorCode.ALREADY_RUNNING.value)
        )

    file_bytes = await file.read()
    result = ingest(file_bytes, file.filename)
    if result.is_failure():
        return error_response(result)

    new_state = RunState(rows=result.data, source_filename=file.filename)
    app.state.run_state = new_state
    logger.info(f"Session replaced with {new_state.total_rows} numbers", extra={"upload_name": file.filename})

    return UploadSummary(
        filename=file.filename,
        total_rows=new_state.total_rows,
        page=page(new_state.rows, PAGE_SIZE, 1)
    )


@app.post(
    "/api/run",
    tags=["Validation"],
    status_code=status.HTTP_202_ACCEPTED
)
async def run_validation(background_tasks: BackgroundTasks, request: RunRequest = Body(...)):
    """
    Start validating every uploaded number with the given API key.

    The run continues in the background; poll /api/results for progress.
    Starting while a run is in progress is rejected with 409.
    """
    run_state = app.state.run_state
    started = validation_pipeline.start(run_state, request.api_key)
    if started.is_failure():
        return error_response(started)

    background_tasks.add_task(
        validation_pipeline.drive,
        run_state,
        request.api_key,
        validation_proxy.validate
    )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "state": run_state.state.value,
            "total_rows": run_state.total_rows,
            "progress": run_state.progress
        }
    )


@app.get(
    "/api/results",
    tags=["Numbers"],
    response_model=ResultsResponse
)
async def get_results(page_number: int = Query(1, alias="page")):
    """
    Read one page of rows together with the run's progress and notice.

    Out-of-range page numbers are clamped to the nearest existing page.
    """
    run_state = app.state.run_state
    current = clamp_page(page_number, page_count(run_state.total_rows, PAGE_SIZE))
    run_state.current_page = current

    return ResultsResponse(
        state=run_state.state,
        progress=run_state.progress,
        notice=run_state.notice,
        checked_rows=run_state.checked_count(),
        page=page(run_state.rows, PAGE_SIZE, current)
    )


@app.get(
    "/api/export",
    tags=["Numbers"]
)
async def export_results():
    """
    Download every row as whatsapp-validation-results.xlsx.

    Available once at least one number has been checked.
    """
    run_state = app.state.run_state
    if run_state.checked_count() == 0:
        return error_response(
            Result.fail("No validation results to export", status_code=status.HTTP_404_NOT_FOUND, code=ErrorCode.NO_RESULTS.value)
        )

    content = export(run_state.rows)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"}
    )


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting WhatsApp Number Validator API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
