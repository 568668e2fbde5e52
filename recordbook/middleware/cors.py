"""
Recordbook Backend: CORS Headers Middleware
============================================

What:  Attaches fixed permissive CORS headers to every /api response and
       answers every OPTIONS request with an empty 200.
How:   Starlette BaseHTTPMiddleware. Preflight requests are short-circuited
       before routing, so no route needs an OPTIONS handler.
When:  Innermost middleware; error responses produced by the exception
       handlers pass through it and get the headers too. Exceptions no
       handler translated are turned into the {error, stack} 500 here, since
       Starlette's server-error handler runs outside the user middleware.

Header values (from settings):
    Access-Control-Allow-Origin:  *
    Access-Control-Allow-Methods: GET, POST, DELETE, OPTIONS
    Access-Control-Allow-Headers: Content-Type

Unlike Starlette's CORSMiddleware, the headers are added whether or not the
request carries an Origin header, and preflight does not depend on
Access-Control-Request-Method being present.
"""

import logging
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from recordbook.exceptions import server_error_body
from recordbook.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Adds a fixed header set to API responses and answers preflights."""

    def __init__(self, app: ASGIApp, headers: Dict[str, str], expose_stack: bool = True):
        super().__init__(app)
        self.headers = dict(headers)
        self.expose_stack = expose_stack

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.headers)

        try:
            response = await call_next(request)
        except Exception as exc:
            rid = request_id_var.get("")
            logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
            response = JSONResponse(
                status_code=500,
                content=server_error_body(exc, str(exc) or type(exc).__name__, self.expose_stack),
            )

        path = request.url.path
        if path == API_PREFIX or path.startswith(API_PREFIX + "/"):
            response.headers.update(self.headers)
        return response
