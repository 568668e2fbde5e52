"""
Recordbook Backend: Login Service
==================================

What:  Checks a username/password pair against the demonstration account table.
How:   The table is copied into a read-only mapping at construction and
       compared by plain equality. No sessions, tokens, hashing, or rate
       limiting; this is a demonstration stub, not a security boundary.
Who:   Built by the application factory from `settings.login_accounts`.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping

from recordbook.schemas.login import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "账号或密码错误"
INVALID_PARAMETERS = "参数错误"


class LoginService:
    """Validates login bodies against a fixed account table."""

    def __init__(self, accounts: Mapping[str, str]):
        self._accounts = MappingProxyType(dict(accounts))

    def authenticate(self, username: Any, password: Any) -> LoginResponse:
        if (
            isinstance(username, str)
            and username in self._accounts
            and self._accounts[username] == password
        ):
            logger.info("Login succeeded for %s", username)
            return LoginResponse(ok=True, username=username)
        logger.info("Login rejected for %s", username)
        return LoginResponse(ok=False, error=INVALID_CREDENTIALS)

    def login(self, payload: Any) -> LoginResponse:
        """
        Handle a decoded POST /api/login body.

        A JSON null is a parameter error. Any other value is read as a
        credential pair: missing fields, wrong types, and bodies that are not
        objects all fail the credential check.
        """
        if payload is None:
            return self.invalid_request()
        request = LoginRequest.model_validate(payload if isinstance(payload, dict) else {})
        return self.authenticate(request.username, request.password)

    @staticmethod
    def invalid_request() -> LoginResponse:
        return LoginResponse(ok=False, error=INVALID_PARAMETERS)
