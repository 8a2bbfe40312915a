"""Utility functions and helpers for nessus-rest."""

from nessus_rest.utils.http_client import (
    INVALID_URI_ERRORS,
    TRANSIENT_ERRORS,
    Transport,
    create_http_client,
    create_retry_policy,
    parse_json,
)

__all__ = [
    "INVALID_URI_ERRORS",
    "TRANSIENT_ERRORS",
    "Transport",
    "create_http_client",
    "create_retry_policy",
    "parse_json",
]
