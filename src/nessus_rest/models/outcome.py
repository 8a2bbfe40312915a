"""Response outcome models.

Every request ends in exactly one of three outcomes, decided once by the
request executor:

- ``Success``: the server answered and the body is not an error object.
- ``ServerError``: the server answered with a JSON object carrying ``error``.
- ``Degraded``: the server was never reached, or retries ran out.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from nessus_rest.errors import DegradedResponseError

INVALID_CREDENTIALS = "Invalid Credentials"


class Success(BaseModel):
    """Server answered with usable data (parsed JSON or raw bytes)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    status_code: int = Field(..., description="HTTP status code")
    data: Any = Field(default_factory=dict, description="Parsed JSON or raw bytes")

    @property
    def degraded(self) -> bool:
        return False

    @property
    def payload(self) -> Any:
        """Body in the shape callers historically consume."""
        return self.data

    def unwrap(self) -> Any:
        return self.data


class ServerError(BaseModel):
    """Server answered with a JSON object carrying a top-level ``error``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["server_error"] = "server_error"
    status_code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Value of the error field")
    data: dict[str, Any] = Field(default_factory=dict, description="Full error object")

    @property
    def degraded(self) -> bool:
        return False

    @property
    def is_invalid_credentials(self) -> bool:
        """Check if the server rejected the session token."""
        return self.message == INVALID_CREDENTIALS

    @property
    def payload(self) -> dict[str, Any]:
        return self.data

    def unwrap(self) -> dict[str, Any]:
        # Server errors are data as far as the wire contract goes.
        return self.data


class Degraded(BaseModel):
    """No usable answer: retries exhausted or the request could not be built."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["degraded"] = "degraded"
    reason: str = Field(..., description="Why the request gave up")
    attempts: int = Field(default=0, description="Number of send attempts made")

    @property
    def degraded(self) -> bool:
        return True

    @property
    def status_code(self) -> None:
        return None

    @property
    def payload(self) -> dict[str, Any]:
        """Empty mapping, indistinguishable from an empty server response."""
        return {}

    def unwrap(self) -> Any:
        """Raise instead of returning the fail-soft empty mapping.

        Raises:
            DegradedResponseError: Always.
        """
        raise DegradedResponseError(
            f"Request degraded after {self.attempts} attempt(s): {self.reason}",
            reason=self.reason,
        )


Outcome = Success | ServerError | Degraded


def is_invalid_credentials(outcome: Outcome) -> bool:
    """Check if an outcome is the server rejecting the session token."""
    return isinstance(outcome, ServerError) and outcome.is_invalid_credentials
