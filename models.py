from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class PipelineState(str, Enum):
    """Lifecycle of a validation run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    HALTED_ON_CREDENTIAL_ERROR = "halted_on_credential_error"


class ErrorCode(str, Enum):
    """Machine-readable codes attached to failed Results and API error bodies."""
    # Ingest
    EMPTY_FILE = "EMPTY_FILE"
    UNSUPPORTED_FILE = "UNSUPPORTED_FILE"
    MALFORMED_FILE = "MALFORMED_FILE"
    TOO_MANY_ROWS = "TOO_MANY_ROWS"
    # Proxy
    MISSING_PARAMETERS = "MISSING_PARAMETERS"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    # Pipeline
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    PER_ROW_FAILURE = "PER_ROW_FAILURE"
    ALREADY_RUNNING = "ALREADY_RUNNING"
    NO_ROWS = "NO_ROWS"
    MISSING_API_KEY = "MISSING_API_KEY"
    # Export
    NO_RESULTS = "NO_RESULTS"


class Row(BaseModel):
    """
    One phone number and its validation outcome.

    Attributes:
        number: Trimmed value from the first column of the uploaded sheet
        status: True when the number is valid/active, False when invalid, None until checked
        error: Diagnostic message from the provider or from a local failure
        is_processing: True only while this row's request is in flight
    """
    number: str
    status: Optional[bool] = None
    error: Optional[str] = None
    is_processing: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def status_label(self) -> str:
        if self.status is None:
            return "—"
        return "Valid" if self.status else "Invalid"

    def reset(self) -> None:
        self.status = None
        self.error = None
        self.is_processing = False


class RunState(BaseModel):
    """
    The single in-memory session: ingested rows plus run progress.

    Attributes:
        rows: Rows in input order; the order never changes after ingest
        progress: Completed rows / total as an integer percentage
        current_page: Page last requested by the UI (display only)
        state: Where the pipeline is in its run lifecycle
        notice: User-facing banner, e.g. the invalid API key notice
        source_filename: Name of the file the rows were ingested from
    """
    rows: List[Row] = Field(default_factory=list)
    progress: int = 0
    current_page: int = 1
    state: PipelineState = PipelineState.IDLE
    notice: Optional[str] = None
    source_filename: Optional[str] = None

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def is_running(self) -> bool:
        return self.state == PipelineState.RUNNING

    def checked_count(self) -> int:
        return sum(1 for row in self.rows if row.status is not None)


class RunOutcome(BaseModel):
    """
    Tagged result of one pipeline run.

    Attributes:
        state: COMPLETED or HALTED_ON_CREDENTIAL_ERROR
        processed: Number of rows visited before the run ended
        failed: Rows that ended with a local transport failure
        last_progress: Progress reached by the final visited row, before any reset
        reason: Why the run halted early, None for completed runs
    """
    state: PipelineState
    processed: int
    failed: int = 0
    last_progress: int = 0
    reason: Optional[str] = None


class PageView(BaseModel):
    """A page of rows for display, with the compact pager window."""
    page_number: int
    page_size: int
    page_count: int
    total_rows: int
    start_index: int
    rows: List[Row]
    window: List[int]


class RunRequest(BaseModel):
    """Body of POST /api/run."""
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")


class UploadSummary(BaseModel):
    """Response of a successful upload."""
    filename: Optional[str]
    total_rows: int
    page: PageView


class ResultsResponse(BaseModel):
    """Response of GET /api/results."""
    state: PipelineState
    progress: int
    notice: Optional[str] = None
    checked_rows: int
    page: PageView
