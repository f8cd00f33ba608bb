import logging
from typing import Any, Dict, Optional

import httpx

from models import ErrorCode
from utils.result import Result

logger = logging.getLogger(__name__)

MISSING_PARAMETERS_MESSAGE = "Missing required parameters"
UPSTREAM_FAILURE_MESSAGE = "Failed to validate number"


def mask_api_key(api_key: Optional[str]) -> str:
    """Return a log-safe form of an API key."""
    if not api_key:
        return ""
    return "***" + api_key[-4:] if len(api_key) > 4 else "***"


class ValidationProxy:
    """
    Forwarder to the WhatsApp number lookup provider.

    The provider payload is returned verbatim; deciding what it means is the
    pipeline's job. Failures are never retried. One ``httpx.AsyncClient`` is
    opened on first use and shared by every lookup until ``aclose``.
    """

    def __init__(
        self,
        provider_url: str,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            provider_url: Provider endpoint receiving the ``number`` and ``api_key`` query parameters
            timeout: Per-request timeout in seconds, None to wait indefinitely
            transport: Optional httpx transport, used by tests to stand in for the provider
        """
        self.provider_url = provider_url
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self._client

    async def aclose(self) -> None:
        """Close the shared client; the next lookup opens a new one."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def validate(self, number: Optional[str], api_key: Optional[str]) -> Result[Dict[str, Any]]:
        """
        Look up one number with the provider.

        Args:
            number: Phone number exactly as ingested
            api_key: Provider API key supplied by the user

        Returns:
            Result[Dict[str, Any]]: The provider JSON on success; MISSING_PARAMETERS (400)
            when either argument is empty; UPSTREAM_FAILURE (500) on any transport error,
            non-2xx provider status or non-JSON body
        """
        if not number or not api_key:
            logger.warning(
                "Rejected validation request with missing parameters",
                extra={"has_number": bool(number), "has_api_key": bool(api_key)}
            )
            return Result.invalid_input(MISSING_PARAMETERS_MESSAGE, code=ErrorCode.MISSING_PARAMETERS.value)

        log_context = {"number": number, "api_key": mask_api_key(api_key)}
        logger.info("Forwarding number to provider", extra=log_context)

        try:
            response = await self.client.get(
                self.provider_url,
                params={"number": number, "api_key": api_key}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Provider answered with an error status",
                extra={**log_context, "provider_status": e.response.status_code}
            )
            return Result.server_error(UPSTREAM_FAILURE_MESSAGE, code=ErrorCode.UPSTREAM_FAILURE.value)
        except httpx.HTTPError as e:
            logger.error(
                "Provider request failed",
                extra={**log_context, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.server_error(UPSTREAM_FAILURE_MESSAGE, code=ErrorCode.UPSTREAM_FAILURE.value)
        except ValueError as e:
            logger.error("Provider returned a non-JSON body", extra={**log_context, "error": str(e)})
            return Result.server_error(UPSTREAM_FAILURE_MESSAGE, code=ErrorCode.UPSTREAM_FAILURE.value)

        if not isinstance(payload, dict):
            logger.error("Provider returned a non-object JSON body", extra=log_context)
            return Result.server_error(UPSTREAM_FAILURE_MESSAGE, code=ErrorCode.UPSTREAM_FAILURE.value)

        logger.debug("Provider response received", extra={**log_context, "payload_keys": sorted(payload)})
        return Result.ok(payload)
