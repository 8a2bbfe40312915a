"""nessus-rest - Resilient client for the Nessus JSON REST interface.

Start, stop, pause and resume scans, watch their progress and download
reports, with transparent retry on network hiccups and re-login when
the session token expires.
"""

__version__ = "0.6.0"

from nessus_rest.client import NessusClient
from nessus_rest.config import NessusSettings
from nessus_rest.errors import (
    DegradedResponseError,
    NessusError,
    PollCancelledError,
    PollTimeoutError,
)

__all__ = [
    "DegradedResponseError",
    "NessusClient",
    "NessusError",
    "NessusSettings",
    "PollCancelledError",
    "PollTimeoutError",
    "__version__",
]
