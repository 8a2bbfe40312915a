"""Request descriptor model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RequestDescriptor(BaseModel):
    """Everything needed to issue one request against the scanner.

    Form ``data`` and a raw ``body`` are mutually exclusive. When
    ``raw_content`` is set the response body is handed back verbatim and
    never inspected for JSON errors.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Request path relative to the scanner URL")
    params: dict[str, Any] = Field(default_factory=dict, description="Query parameters")
    data: dict[str, Any] = Field(default_factory=dict, description="Form-encoded fields")
    body: str | bytes | None = Field(default=None, description="Raw request body")
    content_type: str | None = Field(default=None, description="Content type of the raw body")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra header fields")
    raw_content: bool = Field(
        default=False,
        description="Return the response body as bytes instead of parsed JSON",
    )
    authenticating: bool = Field(
        default=False,
        description="This request is the login exchange itself (never re-authenticated)",
    )

    @model_validator(mode="after")
    def check_body(self) -> "RequestDescriptor":
        """Reject descriptors carrying both form data and a raw body."""
        if self.data and self.body:
            raise ValueError("form data and raw body are mutually exclusive")
        return self

    def with_headers(self, headers: dict[str, str]) -> "RequestDescriptor":
        """Return a copy with ``headers`` merged under the descriptor's own."""
        if not headers:
            return self
        return self.model_copy(update={"headers": {**headers, **self.headers}})
