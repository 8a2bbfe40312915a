"""Request layer services for nessus-rest."""

from nessus_rest.services.executor import RequestExecutor
from nessus_rest.services.poller import JobPoller
from nessus_rest.services.session import Session, SessionManager

__all__ = [
    "JobPoller",
    "RequestExecutor",
    "Session",
    "SessionManager",
]
