"""Tests for login and transparent re-authentication."""

import json

import httpx

from nessus_rest.models import INVALID_CREDENTIALS, ServerError, Success

INVALID_CREDENTIALS_BODY = {"error": INVALID_CREDENTIALS}


class TestAuthenticate:
    """Tests for the login exchange."""

    def test_login_success(self, scanner, client):
        """Test that a token in the response logs the client in."""
        scanner.add("POST", "/session", {"token": "abc123"})

        assert client.authenticate("admin", "secret") is True
        assert client.is_authenticated
        assert client.x_cookie == {"X-Cookie": "token=abc123"}

    def test_login_sends_form_credentials(self, scanner, client):
        """Test that the login exchange posts username, password and json=1."""
        scanner.add("POST", "/session", {"token": "abc123"})

        client.authenticate("admin", "secret")

        request = scanner.requests_to("POST", "/session")[0]
        assert request.content == b"username=admin&password=secret&json=1"
        assert "X-Cookie" not in request.headers

    def test_login_without_token_fails(self, scanner, client):
        """Test that a response without token means login failed."""
        scanner.add("POST", "/session", (401, {"error": "Invalid Credentials"}))

        assert client.authenticate("admin", "wrong") is False
        assert not client.is_authenticated
        assert client.x_cookie == {}

    def test_failed_login_drops_previous_token(self, scanner, client):
        """Test that a failed login does not leave the old token in place."""
        scanner.add("POST", "/session", {"token": "t1"}, (401, INVALID_CREDENTIALS_BODY))

        assert client.authenticate("admin", "secret") is True
        assert client.authenticate("admin", "wrong") is False

        assert not client.is_authenticated
        assert client.x_cookie == {}

    def test_login_never_reauthenticates(self, scanner, client):
        """Test that a credential error on login does not recurse."""
        scanner.add("POST", "/session", (401, INVALID_CREDENTIALS_BODY))

        client.authenticate("admin", "wrong")

        assert scanner.calls("POST", "/session") == 1

    def test_login_degraded(self, scanner, client):
        """Test that an unreachable scanner makes login return False."""
        scanner.add("POST", "/session", httpx.ConnectError("Connection refused"))

        assert client.authenticate("admin", "secret") is False
        assert scanner.calls("POST", "/session") == 4

    def test_autologin(self, scanner, make_client):
        """Test that autologin logs in during construction."""
        scanner.add("POST", "/session", {"token": "auto"})

        client = make_client(autologin=True)

        assert client.is_authenticated
        assert scanner.calls("POST", "/session") == 1

    def test_logout_clears_token(self, scanner, logged_in_client):
        """Test that logout ends the session and forgets the token."""
        scanner.add("DELETE", "/session", b"")

        assert logged_in_client.logout() == 200
        assert not logged_in_client.is_authenticated


class TestReauthentication:
    """Tests for the retry-once re-authentication policy."""

    def test_authenticated_request_carries_token(self, scanner, logged_in_client):
        """Test that requests carry the X-Cookie header."""
        scanner.add("GET", "/scans", {"scans": []})

        logged_in_client.scan_list()

        assert scanner.requests_to("GET", "/scans")[0].headers["X-Cookie"] == "token=t1"

    def test_expired_token_relogs_and_replays_once(self, scanner, logged_in_client):
        """Test [credential-error, success]: one extra login, success returned."""
        scanner.add("GET", "/scans", (401, INVALID_CREDENTIALS_BODY), {"scans": [{"id": 1}]})

        result = logged_in_client.scan_list()

        assert result == {"scans": [{"id": 1}]}
        assert scanner.calls("POST", "/session") == 2
        assert scanner.calls("GET", "/scans") == 2

    def test_replay_uses_new_token(self, scanner, logged_in_client):
        """Test that the replayed request carries the refreshed token."""
        scanner.add("GET", "/scans", (401, INVALID_CREDENTIALS_BODY), {"scans": []})

        logged_in_client.scan_list()

        first, second = scanner.requests_to("GET", "/scans")
        assert first.headers["X-Cookie"] == "token=t1"
        assert second.headers["X-Cookie"] == "token=t2"

    def test_second_credential_error_returned_verbatim(self, scanner, logged_in_client):
        """Test [credential-error, credential-error]: no third attempt."""
        scanner.add("GET", "/scans", (401, INVALID_CREDENTIALS_BODY))

        result = logged_in_client.scan_list()

        assert result == INVALID_CREDENTIALS_BODY
        assert scanner.calls("GET", "/scans") == 2
        assert scanner.calls("POST", "/session") == 2

    def test_failed_relogin_still_replays_once(self, scanner, client):
        """Test that the replay happens even when re-login fails."""
        scanner.add("POST", "/session", {"token": "t1"}, {})
        scanner.add("GET", "/scans", (401, INVALID_CREDENTIALS_BODY))
        client.authenticate("admin", "secret")

        outcome = client.request("GET", "/scans")

        assert isinstance(outcome, ServerError)
        assert outcome.is_invalid_credentials
        assert scanner.calls("GET", "/scans") == 2
        assert not client.is_authenticated
        assert client.x_cookie == {}

    def test_other_errors_do_not_relogin(self, scanner, logged_in_client):
        """Test that only 'Invalid Credentials' triggers re-authentication."""
        scanner.add("GET", "/scans/9", (404, {"error": "The requested file was not found."}))

        logged_in_client.scan_details(9)

        assert scanner.calls("GET", "/scans/9") == 1
        assert scanner.calls("POST", "/session") == 1

    def test_put_and_delete_are_wrapped(self, scanner, logged_in_client):
        """Test that PUT and DELETE also re-authenticate."""
        scanner.add("PUT", "/users/4/chpasswd", (401, INVALID_CREDENTIALS_BODY), b"")
        scanner.add("DELETE", "/policies/2", (401, INVALID_CREDENTIALS_BODY), b"")

        assert logged_in_client.user_chpasswd(4, "new") == 200
        assert logged_in_client.policy_delete(2) == 200
        assert scanner.calls("POST", "/session") == 3

    def test_raw_download_never_relogs(self, scanner, logged_in_client):
        """Test that raw-content requests bypass credential-error inspection."""
        scanner.add("GET", "/scans/1/export/7/download", (401, INVALID_CREDENTIALS_BODY))

        content = logged_in_client.report_download(1, 7)

        assert json.loads(content) == INVALID_CREDENTIALS_BODY
        assert scanner.calls("POST", "/session") == 1

    def test_concurrent_refresh_is_not_repeated(self, scanner, logged_in_client):
        """Test that a token refreshed by someone else is reused, not re-fetched."""
        session = logged_in_client.session
        outcomes = iter(
            [
                ServerError(status_code=401, message="Invalid Credentials"),
                Success(status_code=200, data={"ok": True}),
            ]
        )

        def operation():
            outcome = next(outcomes)
            if isinstance(outcome, ServerError):
                session.set_token("refreshed-elsewhere")
            return outcome

        result = logged_in_client.auth.ensure_fresh_then(operation)

        assert result.data == {"ok": True}
        assert scanner.calls("POST", "/session") == 1
        assert logged_in_client.x_cookie == {"X-Cookie": "token=refreshed-elsewhere"}
