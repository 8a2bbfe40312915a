"""Session ownership and transparent re-authentication.

The session token is shared mutable state: every authenticated request
reads the current header and a re-authentication writes a new one. All
writes happen under ``Session.lock``.
"""

import threading
from collections.abc import Callable

from loguru import logger
from pydantic import SecretStr

from nessus_rest.models.outcome import Outcome, is_invalid_credentials
from nessus_rest.models.request import RequestDescriptor
from nessus_rest.services.executor import RequestExecutor

SESSION_PATH = "/session"


class Session:
    """Credentials plus the current token and derived ``X-Cookie`` header."""

    def __init__(self, username: str, password: SecretStr | str):
        self.username = username
        self.password = password if isinstance(password, SecretStr) else SecretStr(password)
        self.lock = threading.RLock()
        self._token: str | None = None
        # Bumped on every token write, so concurrent callers can tell
        # whether someone else already re-authenticated.
        self._generation = 0

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_authenticated(self) -> bool:
        """Check if a token is held."""
        return self._token is not None

    @property
    def auth_header(self) -> dict[str, str]:
        """Header to attach to authenticated requests (empty without a token)."""
        with self.lock:
            if self._token is None:
                return {}
            return {"X-Cookie": f"token={self._token}"}

    def set_credentials(self, username: str, password: SecretStr | str) -> None:
        with self.lock:
            self.username = username
            self.password = password if isinstance(password, SecretStr) else SecretStr(password)

    def set_token(self, token: str | None) -> None:
        with self.lock:
            self._token = token
            self._generation += 1

    def clear(self) -> None:
        """Forget the token (after logout)."""
        self.set_token(None)


class SessionManager:
    """Log in, and replay requests once when the token has expired."""

    def __init__(self, executor: RequestExecutor, session: Session):
        """Initialize session manager.

        Args:
            executor: Request executor to send through.
            session: Session to read and update.
        """
        self.executor = executor
        self.session = session

    def authenticate(self, username: str, password: SecretStr | str) -> bool:
        """Log in with the given credentials.

        Args:
            username: Nessus username.
            password: Nessus password.

        Returns:
            True if the scanner issued a token, False otherwise.
        """
        with self.session.lock:
            self.session.set_credentials(username, password)
            descriptor = RequestDescriptor(
                path=SESSION_PATH,
                data={
                    "username": username,
                    "password": self.session.password.get_secret_value(),
                    "json": 1,
                },
                authenticating=True,
            )
            outcome = self.executor.execute("POST", descriptor)

            payload = outcome.payload
            token = payload.get("token") if isinstance(payload, dict) else None
            if not token:
                logger.warning(f"Login failed for user {username!r}")
                self.session.clear()
                return False

            self.session.set_token(str(token))
            logger.info(f"Logged in to Nessus as {username!r}")
            return True

    def reauthenticate(self) -> bool:
        """Log in again with the stored credentials."""
        return self.authenticate(self.session.username, self.session.password)

    def ensure_fresh_then(self, operation: Callable[[], Outcome]) -> Outcome:
        """Run ``operation``, re-authenticating and replaying it once if needed.

        If the first outcome is an "Invalid Credentials" error, logs in once
        with the stored credentials and runs ``operation`` exactly once
        more. The second outcome is returned as is, whatever it is.

        Args:
            operation: Callable issuing the request. It must read the
                session header when called so the replay uses the new token.

        Returns:
            Outcome of the last attempt.
        """
        generation = self.session.generation
        outcome = operation()
        if not is_invalid_credentials(outcome):
            return outcome

        logger.info("Session token rejected, re-authenticating")
        with self.session.lock:
            if self.session.generation == generation:
                self.reauthenticate()
            else:
                logger.debug("Session already refreshed by another caller")
        return operation()

    def request(self, method: str, descriptor: RequestDescriptor) -> Outcome:
        """Send an authenticated request.

        The login exchange itself (``descriptor.authenticating``) is sent
        as is and never triggers re-authentication.
        """
        if descriptor.authenticating:
            return self.executor.execute(method, descriptor)

        def operation() -> Outcome:
            return self.executor.execute(method, descriptor.with_headers(self.session.auth_header))

        return self.ensure_fresh_then(operation)

    def logout(self) -> int | None:
        """End the session on the scanner and forget the token.

        Returns:
            HTTP status code of the logout request, or None if degraded.
        """
        outcome = self.request("DELETE", RequestDescriptor(path=SESSION_PATH))
        self.session.clear()
        return outcome.status_code
