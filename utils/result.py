from typing import Generic, TypeVar, Optional, Callable, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for chained operations

class Result(Generic[T]):
    """
    Outcome of an ingest, proxy or pipeline operation.

    A Result carries either the produced data or an error message together with
    the HTTP status the API should answer with and a machine-readable error code
    (see ``models.ErrorCode``), so routes can turn failures into JSON bodies
    without re-classifying them.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Error message (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
        code (Optional[str]): Error code for failures, e.g. "TOO_MANY_ROWS"
        meta (Dict[str, Any]): Extra details about the failure, e.g. the offending row count
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None,
        code: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize a Result object.

        Args:
            success (bool): Whether the operation succeeded
            data (Optional[T], optional): Data produced by a successful operation. Defaults to None.
            error (Optional[str], optional): Error message for a failed operation. Defaults to None.
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code.
                Defaults to 200 for success, 400 for failure.
            code (Optional[str], optional): Error code of a failed operation. Defaults to None.
            meta (Optional[Dict[str, Any]], optional): Failure details. Defaults to an empty dict.
        """
        self.success = success
        self.data = data
        self.error = error
        self.code = code
        self.meta = meta or {}

        # Set default status code based on success/failure if not provided
        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            if isinstance(status_code, int):
                self.status_code = HTTPStatus(status_code)
            else:
                self.status_code = status_code

    @classmethod
    def ok(cls, data: T, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 200 OK.

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(
        cls,
        error: str,
        status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST,
        code: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None
    ) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.
            code (Optional[str], optional): Error code. Defaults to None.
            meta (Optional[Dict[str, Any]], optional): Failure details. Defaults to None.

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, status_code=status_code, code=code, meta=meta)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data", code: Optional[str] = None) -> "Result[T]":
        """
        Create a failed Result with BAD_REQUEST status code.

        Args:
            error (str, optional): The error message. Defaults to "Invalid input data".
            code (Optional[str], optional): Error code. Defaults to None.

        Returns:
            Result[T]: A failed Result with 400 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST, code=code)

    @classmethod
    def conflict(cls, error: str = "Operation already in progress", code: Optional[str] = None) -> "Result[T]":
        """
        Create a failed Result with CONFLICT status code.

        Args:
            error (str, optional): The error message. Defaults to "Operation already in progress".
            code (Optional[str], optional): Error code. Defaults to None.

        Returns:
            Result[T]: A failed Result with 409 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.CONFLICT, code=code)

    @classmethod
    def server_error(cls, error: str = "Internal server error", code: Optional[str] = None) -> "Result[T]":
        """
        Create a failed Result with INTERNAL_SERVER_ERROR status code.

        Args:
            error (str, optional): The error message. Defaults to "Internal server error".
            code (Optional[str], optional): Error code. Defaults to None.

        Returns:
            Result[T]: A failed Result with 500 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR, code=code)

    def is_success(self) -> bool:
        """
        Check if the Result represents a successful operation.

        Returns:
            bool: True if the Result is successful, False otherwise
        """
        return self.success

    def is_failure(self) -> bool:
        """
        Check if the Result represents a failed operation.

        Returns:
            bool: True if the Result is a failure, False otherwise
        """
        return not self.success

    def to_error_body(self) -> Dict[str, Any]:
        """
        Convert a failed Result to the JSON body returned by the API.

        The body always has an ``error`` key; the error code and any details
        are added when present.

        Returns:
            Dict[str, Any]: Dictionary with error, and optionally code and detail keys
        """
        body: Dict[str, Any] = {"error": self.error}
        if self.code:
            body["code"] = self.code
        if self.meta:
            body.update(self.meta)
        return body

    def __str__(self) -> str:
        """
        Get a string representation of the Result.

        Returns:
            str: String representation of the Result
        """
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}) [{self.code}]: {self.error}"

    def __repr__(self) -> str:
        """
        Get a detailed string representation of the Result.

        Returns:
            str: Detailed string representation of the Result
        """
        return (
            f"Result(success={self.success}, status_code={self.status_code!r}, code={self.code!r}, "
            f"data={self.data!r}, error={self.error!r})"
        )

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain a step that itself returns a Result.

        A failed Result short-circuits: its error, status code, code and meta
        are carried over unchanged and ``fn`` is never called.

        Args:
            fn (Callable[[T], Result[U]]): Next step, called with the success data

        Returns:
            Result[U]: Either the original failure or the Result of the next step
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code, code=self.code, meta=self.meta)  # type: ignore
        return fn(self.data)  # type: ignore

    def on_failure(self, fn: Callable[["Result[T]"], None]) -> "Result[T]":
        """
        Execute a side effect, typically logging, if the Result is a failure.

        Args:
            fn (Callable[[Result[T]], None]): Function called with this Result

        Returns:
            Result[T]: The original Result, unchanged
        """
        if not self.is_success():
            fn(self)
        return self
