"""
Epic Notes — CSRF and Configuration Tests
==========================================

What:  Unit tests for token signing/verification and settings validation.
How:   CSRFProtect is exercised with hand-built Starlette requests; Settings
       is constructed directly with `_env_file=None` so a developer's .env
       cannot leak into the results.
"""

from typing import Optional

import pytest
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request
from starlette.responses import Response

from epicnotes.config import DEFAULT_SESSION_SECRET, Settings
from epicnotes.csrf import CSRF_COOKIE, CSRFProtect
from epicnotes.exceptions import CSRFError


def _request(cookie: Optional[str] = None) -> Request:
    headers = []
    if cookie is not None:
        headers.append((b"cookie", f"{CSRF_COOKIE}={cookie}".encode()))
    return Request({"type": "http", "method": "POST", "path": "/", "headers": headers})


class TestCSRFProtect:
    def setup_method(self):
        self.csrf = CSRFProtect(["current-secret", "old-secret"])

    def test_signed_token_verifies(self):
        token = self.csrf.sign("abc")
        assert token.startswith("abc|")
        assert self.csrf.verify(token)

    def test_tampered_token_rejected(self):
        token = self.csrf.sign("abc")
        assert not self.csrf.verify("abd" + token[3:])
        assert not self.csrf.verify("no-signature")
        assert not self.csrf.verify(None)

    def test_rotated_secret_still_verifies(self):
        old = CSRFProtect(["old-secret"]).sign("abc")
        assert self.csrf.verify(old)
        assert not CSRFProtect(["other"]).verify(old)

    def test_get_token_reuses_valid_cookie(self):
        token = self.csrf.sign("abc")
        assert self.csrf.get_token(_request(token)) == token
        assert self.csrf.get_token(_request("forged|xyz")) != "forged|xyz"

    def test_commit_token_sets_cookie_once(self):
        token = self.csrf.sign("abc")

        response = Response()
        self.csrf.commit_token(_request(), response, token)
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{CSRF_COOKIE}=")
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()
        assert "Path=/" in cookie

        response = Response()
        self.csrf.commit_token(_request(token), response, token)
        assert "set-cookie" not in response.headers

    def test_validate(self):
        token = self.csrf.sign("abc")
        self.csrf.validate(_request(token), token)

        with pytest.raises(CSRFError):
            self.csrf.validate(_request(), token)
        with pytest.raises(CSRFError):
            self.csrf.validate(_request(token), None)
        with pytest.raises(CSRFError):
            self.csrf.validate(_request(token), self.csrf.sign("other"))

    def test_validate_rejects_unsigned_matching_pair(self):
        with pytest.raises(CSRFError):
            self.csrf.validate(_request("plain|value"), "plain|value")

    def test_secure_flag(self):
        response = Response()
        CSRFProtect(["s"], secure=True).commit_token(_request(), response, "t|x")
        assert "Secure" in response.headers["set-cookie"]


class TestSettings:
    def test_defaults(self):
        config = Settings(_env_file=None, app_env="development")
        assert config.note_store in ("memory", "sql")
        assert config.public_env() == {"MODE": "development"}

    def test_invalid_app_env_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, app_env="staging")

    def test_log_level_normalized_and_validated(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_session_secrets_split(self):
        config = Settings(_env_file=None, session_secret="new, old ,")
        assert config.session_secrets == ["new", "old"]

    def test_empty_session_secret_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, session_secret=" , ")

    def test_production_refuses_default_secret(self):
        config = Settings(
            _env_file=None, app_env="production", session_secret=DEFAULT_SESSION_SECRET
        )
        with pytest.raises(ValueError, match="SESSION_SECRET"):
            config.validate_required_for_production()

    def test_production_with_real_secret(self):
        config = Settings(_env_file=None, app_env="production", session_secret="s3cr3t")
        assert config.is_production
        config.validate_required_for_production()
