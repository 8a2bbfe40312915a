"""Nessus REST client.

Typical usage::

    from nessus_rest import NessusClient

    with NessusClient(url="https://localhost:8834", username="user", password="pass") as n:
        qs = n.scan_quick_template("basic", "name-of-scan", "localhost")
        scan_id = qs["scan"]["id"]
        n.wait_for_scan(scan_id)
        n.report_download_file(scan_id, "csv", "myscanreport.csv")

Every endpoint method builds a path and payload and goes through the
session manager, which re-authenticates once when the token has expired,
and the request executor, which retries transient network failures.
"""

import json
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
from loguru import logger
from pydantic import SecretStr

from nessus_rest.config import NessusSettings
from nessus_rest.models.outcome import Degraded, Outcome, ServerError, Success
from nessus_rest.models.request import RequestDescriptor
from nessus_rest.models.scan import ExportStatus, ScanStatus, is_scan_finished, stops_scan_polling
from nessus_rest.services.executor import RequestExecutor
from nessus_rest.services.poller import JobPoller
from nessus_rest.services.session import Session, SessionManager
from nessus_rest.utils.http_client import Transport

JSON_CONTENT_TYPE = "application/json"
ADMIN_PERMISSIONS = 128


class NessusClient:
    """Client for the Nessus 6+ JSON REST interface.

    One client holds one connection and one session. Calls block, and
    polling waits sleep the calling thread. Session updates are locked,
    so a client may be shared between threads, but requests on it are
    not pipelined.
    """

    def __init__(
        self,
        settings: NessusSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        **overrides: Any,
    ):
        """Initialize client, logging in unless ``autologin`` is off.

        Args:
            settings: Connection settings. Defaults to environment/.env.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
            sleep: Sleep function used for retries and polling.
            clock: Monotonic clock used for poll deadlines.
            **overrides: Settings fields overriding ``settings``.
        """
        if settings is None:
            settings = NessusSettings(**overrides)
        elif overrides:
            settings = NessusSettings(**{**settings.model_dump(), **overrides})
        self.settings = settings

        self.quick_defaults: dict[str, Any] = {
            "enabled": False,
            "launch": "ONETIME",
            "launch_now": True,
            "description": "Created with nessus-rest",
        }

        self.transport = Transport(settings, transport=transport)
        self.executor = RequestExecutor(self.transport, settings, sleep=sleep)
        self.session = Session(settings.username, settings.password)
        self.auth = SessionManager(self.executor, self.session)
        self.poller = JobPoller(interval=settings.poll_sleep, sleep=sleep, clock=clock)

        if settings.autologin:
            self.authenticate(settings.username, settings.password)

    # Session

    def authenticate(self, username: str, password: SecretStr | str) -> bool:
        """Log in to the scanner.

        Returns:
            True if logged in, False if not.
        """
        return self.auth.authenticate(username, password)

    login = authenticate

    def authenticate_default(self) -> bool:
        """Log in again with the stored credentials."""
        return self.auth.reauthenticate()

    @property
    def is_authenticated(self) -> bool:
        """Check if the client holds a session token."""
        return self.session.is_authenticated

    @property
    def x_cookie(self) -> dict[str, str]:
        """Authentication header for the current token (empty when logged out)."""
        return self.session.auth_header

    def logout(self) -> int | None:
        """Log out from the scanner.

        Returns:
            HTTP status code, or None if the request degraded.
        """
        return self.auth.logout()

    user_logout = logout

    # Request layer

    def request(self, method: str, path: str | RequestDescriptor, **fields: Any) -> Outcome:
        """Send an authenticated request and return its outcome.

        Args:
            method: HTTP method.
            path: Request path, or a complete descriptor.
            **fields: ``RequestDescriptor`` fields when ``path`` is a string.

        Returns:
            ``Success``, ``ServerError`` or ``Degraded``.
        """
        if isinstance(path, RequestDescriptor):
            descriptor = path
        else:
            descriptor = RequestDescriptor(path=path, **fields)
        return self.auth.request(method, descriptor)

    def get(self, path: str | RequestDescriptor, **fields: Any) -> Any:
        """GET returning parsed JSON (or bytes with ``raw_content=True``).

        Degraded requests return an empty mapping.
        """
        return self.request("GET", path, **fields).payload

    def post(self, path: str | RequestDescriptor, **fields: Any) -> Any:
        """POST returning parsed JSON; degraded requests return an empty mapping."""
        return self.request("POST", path, **fields).payload

    def put(self, path: str | RequestDescriptor, **fields: Any) -> Any:
        """PUT returning parsed JSON; degraded requests return None."""
        outcome = self.request("PUT", path, **fields)
        return None if outcome.degraded else outcome.payload

    def delete(self, path: str | RequestDescriptor, **fields: Any) -> Any:
        """DELETE returning parsed JSON; degraded requests return None."""
        outcome = self.request("DELETE", path, **fields)
        return None if outcome.degraded else outcome.payload

    def _post_json(self, path: str, payload: dict[str, Any]) -> Any:
        return self.post(path, body=json.dumps(payload), content_type=JSON_CONTENT_TYPE)

    # Server

    def server_properties(self) -> dict[str, Any]:
        return self.get("/server/properties")

    get_server_properties = server_properties

    def server_status(self) -> dict[str, Any]:
        return self.get("/server/status")

    def is_admin(self) -> bool:
        """Check if the logged in user is an administrator."""
        session = self.get("/session")
        return isinstance(session, dict) and session.get("permissions") == ADMIN_PERMISSIONS

    # Users

    def user_add(self, username: str, password: str, permissions: int | str, user_type: str) -> Any:
        """Add a user to the scanner.

        Args:
            username: New user's name.
            password: New user's password.
            permissions: Permission level (e.g. 16 standard, 128 administrator).
            user_type: Account type, usually ``local``.

        Returns:
            Parsed JSON describing the new user.
        """
        payload = {
            "username": username,
            "password": password,
            "permissions": permissions,
            "type": user_type,
            "json": 1,
        }
        return self.post("/users", data=payload)

    def user_delete(self, user_id: int | str) -> int | None:
        """Delete a user; returns the HTTP status code (None if degraded)."""
        return self.request("DELETE", f"/users/{user_id}").status_code

    def user_chpasswd(self, user_id: int | str, password: str) -> int | None:
        """Change a user's password; returns the HTTP status code (None if degraded)."""
        payload = {"password": password, "json": 1}
        return self.request("PUT", f"/users/{user_id}/chpasswd", data=payload).status_code

    # Listings

    def list_policies(self) -> dict[str, Any]:
        return self.get("/policies")

    def list_users(self) -> dict[str, Any]:
        return self.get("/users")

    def list_folders(self) -> dict[str, Any]:
        return self.get("/folders")

    def list_scanners(self) -> dict[str, Any]:
        return self.get("/scanners")

    def list_families(self) -> dict[str, Any]:
        return self.get("/plugins/families")

    def list_plugins(self, family_id: int | str) -> dict[str, Any]:
        return self.get(f"/plugins/families/{family_id}")

    def list_templates(self, template_type: str) -> dict[str, Any]:
        """List editor templates; ``template_type`` is ``scan`` or ``policy``."""
        return self.get(f"/editor/{template_type}/templates")

    def plugin_details(self, plugin_id: int | str) -> dict[str, Any]:
        return self.get(f"/plugins/plugin/{plugin_id}")

    def editor_templates(self, template_type: str, uuid: str) -> dict[str, Any]:
        """Get one editor template by type (``scan`` or ``policy``) and uuid."""
        return self.get(f"/editor/{template_type}/templates/{uuid}")

    def policy_delete(self, policy_id: int | str) -> int | None:
        return self.request("DELETE", f"/policies/{policy_id}").status_code

    # Scans

    def scan_create(self, uuid: str, settings: dict[str, Any]) -> dict[str, Any]:
        """Create a scan from a template uuid and scan settings."""
        return self._post_json("/scans", {"uuid": uuid, "settings": settings, "json": 1})

    def scan_launch(self, scan_id: int | str) -> dict[str, Any]:
        return self.post(f"/scans/{scan_id}/launch")

    def scan_list(self) -> dict[str, Any]:
        return self.get("/scans")

    list_scans = scan_list

    def scan_details(self, scan_id: int | str) -> dict[str, Any]:
        return self.get(f"/scans/{scan_id}")

    def scan_pause(self, scan_id: int | str) -> dict[str, Any]:
        return self.post(f"/scans/{scan_id}/pause")

    def scan_resume(self, scan_id: int | str) -> dict[str, Any]:
        return self.post(f"/scans/{scan_id}/resume")

    def scan_stop(self, scan_id: int | str) -> dict[str, Any]:
        return self.post(f"/scans/{scan_id}/stop")

    def scan_delete(self, scan_id: int | str) -> bool:
        """Delete a scan.

        Returns:
            True if the scanner answered 200.
        """
        return self.request("DELETE", f"/scans/{scan_id}").status_code == httpx.codes.OK

    def host_detail(self, scan_id: int | str, host_id: int | str) -> dict[str, Any]:
        return self.get(f"/scans/{scan_id}/hosts/{host_id}")

    def scan_quick_template(
        self, template_name: str, name: str, targets: str
    ) -> dict[str, Any] | None:
        """Create a scan from a template matched by uuid, name or title.

        Args:
            template_name: Template uuid, name or title.
            name: Name of the new scan.
            targets: Scan targets (comma or newline separated).

        Returns:
            Parsed JSON with the created scan, or None if no template matches.
        """
        listing = self.list_templates("scan")
        templates = (listing.get("templates") if isinstance(listing, dict) else None) or []
        matches = [
            t
            for t in templates
            if template_name in (t.get("uuid"), t.get("name"), t.get("title"))
        ]
        if not matches:
            logger.warning(f"No scan template matches {template_name!r}")
            return None

        template_uuid = matches[0]["uuid"]
        settings = dict(self.editor_templates("scan", template_uuid))
        settings.update(self.quick_defaults)
        settings["name"] = name
        settings["text_targets"] = targets
        return self.scan_create(template_uuid, settings)

    def scan_quick_policy(self, policy_name: str, name: str, targets: str) -> dict[str, Any] | None:
        """Create a scan from a policy matched by template uuid or name.

        Returns:
            Parsed JSON with the created scan, or None if no policy matches.
        """
        listing = self.list_policies()
        policies = (listing.get("policies") if isinstance(listing, dict) else None) or []
        matches = [p for p in policies if policy_name in (p.get("template_uuid"), p.get("name"))]
        if not matches:
            logger.warning(f"No policy matches {policy_name!r}")
            return None

        template_uuid = matches[0]["template_uuid"]
        settings = dict(self.quick_defaults)
        settings["name"] = name
        settings["text_targets"] = targets
        return self.scan_create(template_uuid, settings)

    # Scan completion polling

    def scan_status(self, scan_id: int | str) -> str | None:
        """Get the status of a scan.

        Returns:
            The scan's ``info.status``, ``"error"`` if the scanner answered
            with an error object, or None if the request degraded.
        """
        outcome = self.request("GET", f"/scans/{scan_id}")
        if isinstance(outcome, ServerError):
            logger.warning(f"Scan {scan_id} status error: {outcome.message}")
            return ScanStatus.ERROR.value
        if isinstance(outcome, Degraded):
            return None
        data = outcome.data if isinstance(outcome.data, dict) else {}
        return (data.get("info") or {}).get("status")

    def scan_finished(self, scan_id: int | str) -> bool:
        """Check if a scan is completed, canceled or imported."""
        return is_scan_finished(self.scan_status(scan_id))

    def wait_for_scan(
        self,
        scan_id: int | str,
        *,
        interval: float | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> str:
        """Block until a scan is finished or reports an error.

        Args:
            scan_id: Scan to wait for.
            interval: Seconds between status checks (defaults to ``poll_sleep``).
            timeout: Give up after this many seconds (no limit by default).
            cancel: Event aborting the wait when set.

        Returns:
            The terminal status, or ``"error"``.

        Raises:
            PollTimeoutError: ``timeout`` passed first.
            PollCancelledError: ``cancel`` was set.
        """
        status = self.poller.wait_until(
            lambda: self.scan_status(scan_id),
            stops_scan_polling,
            interval,
            timeout=timeout,
            cancel=cancel,
        )
        logger.info(f"Scan {scan_id} finished with status {status}")
        return status

    scan_wait4finish = wait_for_scan

    # Export polling

    def scan_export(self, scan_id: int | str, export_format: str) -> dict[str, Any]:
        """Request an export; the response carries the export ``file`` id."""
        return self._post_json(f"/scans/{scan_id}/export", {"format": export_format})

    def scan_export_status(self, scan_id: int | str, file_id: int | str) -> dict[str, Any]:
        return self.get(f"/scans/{scan_id}/export/{file_id}/status")

    def export_status(self, scan_id: int | str, file_id: int | str) -> str | None:
        status = self.scan_export_status(scan_id, file_id)
        return status.get("status") if isinstance(status, dict) else None

    def report_download(self, scan_id: int | str, file_id: int | str) -> bytes | None:
        """Download an exported report as raw bytes (None if degraded)."""
        outcome = self.request(
            "GET",
            f"/scans/{scan_id}/export/{file_id}/download",
            raw_content=True,
        )
        return outcome.data if isinstance(outcome, Success) else None

    def poll_export_and_download(
        self,
        scan_id: int | str,
        export_format: str,
        *,
        interval: float | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> bytes | None:
        """Export a scan, wait until the export is ready, and download it.

        Args:
            scan_id: Scan to export.
            export_format: Export format (``nessus``, ``csv``, ``html``, ...).
            interval: Seconds between status checks (defaults to ``poll_sleep``).
            timeout: Give up after this many seconds (no limit by default).
            cancel: Event aborting the wait when set.

        Returns:
            Report bytes, or None if the export was not found or failed.

        Raises:
            PollTimeoutError: ``timeout`` passed first.
            PollCancelledError: ``cancel`` was set.
        """
        export = self.scan_export(scan_id, export_format)
        file_id = export.get("file") if isinstance(export, dict) else None
        if file_id is None:
            logger.warning(f"Export of scan {scan_id} as {export_format} was not accepted")
            return None

        status = self.poller.wait_until(
            lambda: self.export_status(scan_id, file_id),
            lambda s: not s or s == ExportStatus.READY,
            interval,
            timeout=timeout,
            cancel=cancel,
        )
        if status != ExportStatus.READY:
            logger.warning(f"Export {file_id} of scan {scan_id} not found or failed")
            return None

        return self.report_download(scan_id, file_id)

    report_download_quick = poll_export_and_download

    def report_download_file(
        self,
        scan_id: int | str,
        export_format: str,
        output: str | Path,
        **poll_options: Any,
    ) -> Path | None:
        """Export a scan and write the report to ``output``.

        Returns:
            Path written, or None if the export failed (nothing is written).
        """
        content = self.poll_export_and_download(scan_id, export_format, **poll_options)
        if content is None:
            return None
        path = Path(output)
        path.write_bytes(content)
        logger.info(f"Wrote {len(content)} bytes to {path}")
        return path

    # Lifecycle

    def close(self) -> None:
        """Close the connection."""
        self.transport.close()

    def __enter__(self) -> "NessusClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
