"""
Recordbook Backend: Login Schemas
==================================

What:  Request and response models for POST /api/login.

The request fields accept any JSON value. A missing field or a value of the
wrong type is a failed login, not a malformed request; only a body that
cannot be read at all is a parameter error.
"""

from typing import Any, Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: Any = None
    password: Any = None


class LoginResponse(BaseModel):
    """
    {ok: true, username} on success, {ok: false, error} otherwise.

    Served with response_model_exclude_none so the unused key is omitted.
    """
    ok: bool
    username: Optional[str] = None
    error: Optional[str] = None
