"""Resilient request executor.

Wraps the transport with a bounded retry on transient failures and turns
every response into an ``Outcome``. Nothing here raises for network or
server trouble: exhausted retries and malformed URIs degrade to an empty
result.
"""

import time
from collections.abc import Callable

import httpx
from loguru import logger

from nessus_rest.config import NessusSettings
from nessus_rest.models.outcome import Degraded, Outcome, ServerError, Success
from nessus_rest.models.request import RequestDescriptor
from nessus_rest.utils.http_client import (
    INVALID_URI_ERRORS,
    TRANSIENT_ERRORS,
    Transport,
    create_retry_policy,
    parse_json,
)

BODY_METHODS = frozenset({"POST", "PUT"})


class RequestExecutor:
    """Send requests with retry and classify the responses.

    Stateless between calls; the only side effect is the network call.
    """

    def __init__(
        self,
        transport: Transport,
        settings: NessusSettings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize request executor.

        Args:
            transport: Transport to send requests through.
            settings: Settings carrying the retry count and sleep.
            sleep: Sleep function used between retries.
        """
        self.transport = transport
        self.settings = settings
        self._sleep = sleep

    def execute(self, method: str, descriptor: RequestDescriptor) -> Outcome:
        """Send one request, retrying transient failures.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            descriptor: What to send.

        Returns:
            ``Success``, ``ServerError`` or ``Degraded``.
        """
        method = method.upper()
        headers = dict(descriptor.headers)
        data = None
        content = None
        if method in BODY_METHODS:
            if descriptor.body:
                content = descriptor.body
                if descriptor.content_type:
                    headers["Content-Type"] = descriptor.content_type
            elif descriptor.data:
                data = descriptor.data

        attempts = 0

        def send() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            logger.debug(f"{method} {descriptor.path} (attempt {attempts})")
            return self.transport.send(
                method,
                descriptor.path,
                headers=headers,
                params=descriptor.params,
                data=data,
                content=content,
            )

        retrying = create_retry_policy(
            max_retries=self.settings.http_retry,
            retry_sleep=self.settings.http_sleep,
            sleep=self._sleep,
        )

        try:
            response = retrying(send)
        except INVALID_URI_ERRORS as e:
            logger.warning(f"Invalid URI for {method} {descriptor.path!r}: {e}")
            return Degraded(reason=f"invalid URI: {e}", attempts=attempts)
        except TRANSIENT_ERRORS as e:
            logger.warning(
                f"Giving up on {method} {descriptor.path} after {attempts} attempts: {e}"
            )
            return Degraded(reason=f"{type(e).__name__}: {e}", attempts=attempts)

        return self.classify(response, descriptor)

    @staticmethod
    def classify(response: httpx.Response, descriptor: RequestDescriptor) -> Outcome:
        """Turn a response into an outcome.

        Raw-content responses are returned as bytes and never inspected.
        A JSON object with a non-null top-level ``error`` is a ``ServerError``;
        a body that is not JSON yields an empty mapping.
        """
        if descriptor.raw_content:
            return Success(status_code=response.status_code, data=response.content)

        parsed = parse_json(response.content)
        if isinstance(parsed, dict) and parsed.get("error") is not None:
            return ServerError(
                status_code=response.status_code,
                message=str(parsed["error"]),
                data=parsed,
            )
        return Success(status_code=response.status_code, data=parsed)
