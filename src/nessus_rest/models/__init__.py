"""Data models for nessus-rest."""

from nessus_rest.models.outcome import (
    INVALID_CREDENTIALS,
    Degraded,
    Outcome,
    ServerError,
    Success,
    is_invalid_credentials,
)
from nessus_rest.models.request import RequestDescriptor
from nessus_rest.models.scan import (
    TERMINAL_SCAN_STATUSES,
    ExportStatus,
    ScanStatus,
    is_scan_finished,
    stops_scan_polling,
)

__all__ = [
    "INVALID_CREDENTIALS",
    "TERMINAL_SCAN_STATUSES",
    "Degraded",
    "ExportStatus",
    "Outcome",
    "RequestDescriptor",
    "ScanStatus",
    "ServerError",
    "Success",
    "is_invalid_credentials",
    "is_scan_finished",
    "stops_scan_polling",
]
