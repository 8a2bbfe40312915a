"""HTTP client utilities for nessus-rest."""

import json
import time
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from nessus_rest.config import NessusSettings

# Failures worth retrying: timeouts, resets, premature EOF, malformed
# responses/headers and other protocol errors.
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.ProtocolError,
    httpx.DecodingError,
)

# The request can never succeed; retrying is pointless.
INVALID_URI_ERRORS: tuple[type[Exception], ...] = (
    httpx.InvalidURL,
    httpx.UnsupportedProtocol,
)


def create_http_client(
    settings: NessusSettings,
    transport: httpx.BaseTransport | None = None,
    **kwargs: Any,
) -> httpx.Client:
    """Create an HTTP client holding a single persistent connection.

    Args:
        settings: Connection settings.
        transport: Optional transport override (e.g. ``httpx.MockTransport``).
        **kwargs: Additional arguments passed to httpx.Client.

    Returns:
        Configured httpx.Client instance.
    """
    kwargs.pop("timeout", None)

    return httpx.Client(
        base_url=settings.base_url,
        verify=settings.ssl_verify,
        timeout=httpx.Timeout(settings.timeout),
        limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
        transport=transport,
        **kwargs,
    )


class Transport:
    """Thin request sender over one httpx.Client.

    Never retries and never interprets responses; that is the executor's
    job.
    """

    def __init__(
        self,
        settings: NessusSettings,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize transport.

        Args:
            settings: Connection settings.
            transport: Optional httpx transport override.
        """
        self.settings = settings
        self._client = create_http_client(settings, transport=transport)

    def send(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        content: str | bytes | None = None,
    ) -> httpx.Response:
        """Build and send one request.

        Raises:
            httpx.InvalidURL: If ``path`` cannot be turned into a URL.
            httpx.TransportError: On any network or protocol failure.
        """
        request = self._client.build_request(
            method,
            path,
            headers=headers,
            params=params or None,
            data=data or None,
            content=content,
        )
        return self._client.send(request)

    def close(self) -> None:
        """Close the underlying connection."""
        self._client.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_retry_policy(
    max_retries: int = 3,
    retry_sleep: float = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Create a tenacity retry policy for transient transport failures.

    Args:
        max_retries: Retries after the first attempt (``max_retries + 1`` sends).
        retry_sleep: Fixed wait between attempts (seconds).
        sleep: Sleep function, injectable for tests.

    Returns:
        Configured ``Retrying`` instance. It re-raises the last error when
        attempts run out; callers decide how to degrade.
    """
    return Retrying(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_fixed(retry_sleep),
        sleep=sleep,
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying request (attempt {retry_state.attempt_number}): "
            f"{retry_state.outcome.exception() if retry_state.outcome else 'unknown error'}"
        ),
    )


def parse_json(body: bytes | str) -> Any:
    """Parse a response body as JSON.

    Returns:
        Parsed JSON, or an empty mapping if the body is not JSON.
    """
    try:
        return json.loads(body)
    except (ValueError, TypeError):
        return {}
