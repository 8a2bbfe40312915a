"""Scan and export job status values."""

from enum import StrEnum


class ScanStatus(StrEnum):
    """Scan states that matter to completion polling."""

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELED = "canceled"
    IMPORTED = "imported"
    # Pseudo-status: scan details came back as an error object.
    ERROR = "error"


TERMINAL_SCAN_STATUSES = frozenset(
    {ScanStatus.COMPLETED, ScanStatus.CANCELED, ScanStatus.IMPORTED}
)


class ExportStatus(StrEnum):
    """Export job states reported by the scanner."""

    LOADING = "loading"
    READY = "ready"


def is_scan_finished(status: str | None) -> bool:
    """Check if a scan status is terminal.

    Args:
        status: Status string as reported by the scanner.

    Returns:
        True for completed, canceled and imported scans.
    """
    return status in TERMINAL_SCAN_STATUSES


def stops_scan_polling(status: str | None) -> bool:
    """Check if scan polling should stop (terminal or error)."""
    return is_scan_finished(status) or status == ScanStatus.ERROR
