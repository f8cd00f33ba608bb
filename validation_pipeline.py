"""
Sequential validation of the ingested rows.

A run is a fold over the rows of a RunState: one request at a time, strictly
in input order, publishing the state after every step through ``on_update``.
The fold ends either COMPLETED or HALTED_ON_CREDENTIAL_ERROR, the latter as
soon as the provider reports that the API key is invalid.
"""
import logging
import math
from typing import Any, Awaitable, Callable, Dict, Optional

from models import ErrorCode, PipelineState, RunOutcome, RunState
from utils.result import Result
from validation_proxy import mask_api_key

logger = logging.getLogger(__name__)

TRANSPORT_FAILURE_MESSAGE = "Failed to validate"
INVALID_API_KEY_ERROR = "Invalid API Key"
CREDENTIAL_NOTICE = "Invalid API Key. Validation stopped; check your API key and run again."

Validator = Callable[[str, str], Awaitable[Result[Dict[str, Any]]]]
UpdateCallback = Callable[[RunState], None]

_TRUE_STRINGS = {"true", "1", "yes", "valid"}
_FALSE_STRINGS = {"false", "0", "no", "invalid"}


def as_flag(value: Any) -> Optional[bool]:
    """
    Read a boolean-like provider field.

    Returns None when the value is absent or cannot be read as a boolean.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def is_credential_error(payload: Dict[str, Any]) -> bool:
    return as_flag(payload.get("status")) is False and payload.get("error") == INVALID_API_KEY_ERROR


def number_status(payload: Dict[str, Any]) -> bool:
    """
    Validity of a number from a provider payload.

    ``numberstatus`` is the success-path field. Payloads without it (error
    shapes) fall back to ``status``, and anything unreadable counts as invalid.
    """
    flag = as_flag(payload.get("numberstatus"))
    if flag is None:
        flag = as_flag(payload.get("status"))
    return bool(flag)


def progress_for(completed: int, total: int) -> int:
    """Completed share of the run as a percentage, halves rounded up."""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def start(run_state: RunState, api_key: Optional[str]) -> Result[RunState]:
    """
    Move a RunState from any finished state to RUNNING.

    Args:
        run_state: Session to run
        api_key: Provider API key

    Returns:
        Result[RunState]: The running state, or ALREADY_RUNNING (409), NO_ROWS (400)
        or MISSING_API_KEY (400)
    """
    if run_state.is_running:
        return Result.conflict("Validation is already running", code=ErrorCode.ALREADY_RUNNING.value)
    if not run_state.rows:
        return Result.invalid_input("Upload a file with phone numbers first", code=ErrorCode.NO_ROWS.value)
    if not api_key or not api_key.strip():
        return Result.invalid_input("API key is required", code=ErrorCode.MISSING_API_KEY.value)

    for row in run_state.rows:
        row.reset()
    run_state.progress = 0
    run_state.notice = None
    run_state.state = PipelineState.RUNNING
    logger.info(
        "Validation run started",
        extra={"total_rows": run_state.total_rows, "api_key": mask_api_key(api_key)}
    )
    return Result.ok(run_state)


async def drive(
    run_state: RunState,
    api_key: str,
    validate: Validator,
    on_update: Optional[UpdateCallback] = None
) -> RunOutcome:
    """
    Validate every row of a started RunState, one request at a time.

    Args:
        run_state: A RunState already moved to RUNNING by ``start``
        api_key: Provider API key
        validate: Coroutine function looking up one number
        on_update: Called with the RunState after each in-flight mark and each resolution

    Returns:
        RunOutcome: COMPLETED, or HALTED_ON_CREDENTIAL_ERROR with the halting reason
    """
    total = run_state.total_rows
    processed = 0
    failed = 0

    def publish() -> None:
        if on_update is not None:
            on_update(run_state)

    try:
        for index, row in enumerate(run_state.rows):
            row.is_processing = True
            publish()

            try:
                result = await validate(row.number, api_key)
            except Exception as e:
                logger.error(
                    "Validation request raised",
                    extra={"row_index": index, "number": row.number, "error": str(e)}
                )
                result = Result.server_error(str(e), code=ErrorCode.PER_ROW_FAILURE.value)

            halted = False
            if result.is_success():
                payload = result.data or {}
                row.status = number_status(payload)
                error = payload.get("error")
                row.error = str(error) if error is not None else None
                halted = is_credential_error(payload)
            else:
                failed += 1
                row.status = False
                row.error = TRANSPORT_FAILURE_MESSAGE
                logger.warning(
                    "Row could not be validated",
                    extra={"row_index": index, "number": row.number, "error_code": result.code}
                )

            row.is_processing = False
            processed = index + 1
            run_state.progress = progress_for(processed, total)
            publish()

            if halted:
                run_state.state = PipelineState.HALTED_ON_CREDENTIAL_ERROR
                run_state.notice = CREDENTIAL_NOTICE
                logger.warning(
                    "Validation halted on invalid API key",
                    extra={"row_index": index, "processed": processed, "total_rows": total}
                )
                publish()
                return RunOutcome(
                    state=PipelineState.HALTED_ON_CREDENTIAL_ERROR,
                    processed=processed,
                    failed=failed,
                    last_progress=run_state.progress,
                    reason=ErrorCode.INVALID_CREDENTIAL.value
                )
    except BaseException:
        # Never leave the session stuck in RUNNING
        for row in run_state.rows:
            row.is_processing = False
        run_state.state = PipelineState.IDLE
        raise

    last_progress = run_state.progress
    run_state.progress = 0
    run_state.state = PipelineState.COMPLETED
    logger.info(
        "Validation run completed",
        extra={"processed": processed, "failed": failed, "total_rows": total}
    )
    publish()
    return RunOutcome(
        state=PipelineState.COMPLETED,
        processed=processed,
        failed=failed,
        last_progress=last_progress
    )


async def run(
    run_state: RunState,
    api_key: Optional[str],
    validate: Validator,
    on_update: Optional[UpdateCallback] = None
) -> Result[RunOutcome]:
    """
    Start and drive a run to the end.

    Returns:
        Result[RunOutcome]: The run outcome, or the reason the run did not start
    """
    started = start(run_state, api_key)
    if started.is_failure():
        logger.info(f"Validation run not started: {started.error}", extra={"error_code": started.code})
        return Result.fail(started.error or "", status_code=started.status_code, code=started.code)
    outcome = await drive(run_state, api_key or "", validate, on_update)
    return Result.ok(outcome)
