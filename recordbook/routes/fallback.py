"""
Recordbook Backend: Fallback Routes
====================================

What:  Plain-text 404 for any /api request no other route matched, including
       a known path with the wrong method.
How:   Registered after every API router. Starlette prefers a full
       path+method match over a path-only match, so this catch-all only wins
       when no API route accepts the request.

Non-/api paths are not handled here; the application factory mounts the
static asset server (or `not_found` when none is bound) behind these routes.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(include_in_schema=False)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def not_found() -> PlainTextResponse:
    return PlainTextResponse("Not Found", status_code=404)


router.add_api_route("/api", not_found, methods=ALL_METHODS)
router.add_api_route("/api/{path:path}", not_found, methods=ALL_METHODS)
