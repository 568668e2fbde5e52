"""
Recordbook Backend: Login Route
================================

What:  POST /api/login against the demonstration account table.
How:   Always answers 200; failures are reported in the body as {ok: false, error}.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request

from recordbook.schemas.login import LoginResponse
from recordbook.services.login_service import LoginService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Login"])


def get_login_service(request: Request) -> LoginService:
    return request.app.state.login_service


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    summary="Check a demonstration account",
)
async def login(
    request: Request,
    service: LoginService = Depends(get_login_service),
) -> LoginResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.info("Login body could not be decoded")
        return service.invalid_request()
    return service.login(payload)
