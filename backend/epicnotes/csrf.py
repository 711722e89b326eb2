"""
Epic Notes — CSRF Protection
=============================

What:  Double-submit CSRF tokens for every HTML form.
Why:   Form POSTs are authenticated only by what the browser sends along;
       a hostile page could otherwise submit the edit form on a user's behalf.
How:   1. Rendering a form issues (or reuses) a signed random token stored in
          the `csrf` cookie (HttpOnly, SameSite=Lax, Secure in production)
       2. The same token is embedded in the form as a hidden `csrf` field
       3. On POST the field must equal the cookie AND carry a valid signature

Signing:
    token = "<random>|<hmac-sha256(secret, random)>"
    The first SESSION_SECRET signs; every listed secret verifies, so secrets
    can be rotated without invalidating open forms.
"""

import hashlib
import hmac
import logging
import secrets
from typing import List, Optional

from starlette.requests import Request
from starlette.responses import Response

from epicnotes.config import settings
from epicnotes.exceptions import CSRFError

logger = logging.getLogger(__name__)

CSRF_COOKIE = "csrf"
CSRF_FIELD = "csrf"


class CSRFProtect:
    def __init__(self, secrets_list: List[str], secure: bool = False):
        self.secrets = secrets_list
        self.secure = secure

    def _signature(self, secret: str, value: str) -> str:
        return hmac.new(secret.encode(), value.encode(), hashlib.sha256).hexdigest()

    def sign(self, value: str) -> str:
        return f"{value}|{self._signature(self.secrets[0], value)}"

    def verify(self, token: Optional[str]) -> bool:
        """True when `token` is well formed and signed by any known secret."""
        if not token or "|" not in token:
            return False
        value, signature = token.rsplit("|", 1)
        return any(
            hmac.compare_digest(self._signature(secret, value).encode(), signature.encode())
            for secret in self.secrets
        )

    def get_token(self, request: Request) -> str:
        """
        The token to embed in a form: the cookie's when it is still valid,
        a freshly signed one otherwise. Remember to call commit_token().
        """
        existing = request.cookies.get(CSRF_COOKIE)
        if self.verify(existing):
            return existing
        return self.sign(secrets.token_urlsafe(32))

    def commit_token(self, request: Request, response: Response, token: str) -> None:
        """Set the cookie when the response carries a token the browser lacks."""
        if request.cookies.get(CSRF_COOKIE) == token:
            return
        response.set_cookie(
            key=CSRF_COOKIE,
            value=token,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def validate(self, request: Request, submitted: Optional[str]) -> None:
        """
        Reject the request unless the submitted token matches the cookie.

        Raises:
            CSRFError (→ 403) on a missing, mismatched or forged token.
        """
        cookie = request.cookies.get(CSRF_COOKIE)
        if not cookie or not isinstance(submitted, str):
            logger.warning("CSRF token missing on %s %s", request.method, request.url.path)
            raise CSRFError()
        if not hmac.compare_digest(cookie.encode(), submitted.encode()) or not self.verify(cookie):
            logger.warning("CSRF token mismatch on %s %s", request.method, request.url.path)
            raise CSRFError()


csrf = CSRFProtect(settings.session_secrets, secure=settings.is_production)
