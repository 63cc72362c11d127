"""Permissive CORS handling for the public API."""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}
PREFLIGHT_MAX_AGE = 86400


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Answer preflight requests directly and tag every other response.

    Headers are added whether or not the request carries an ``Origin``, and
    preflight replies are 204 with a fixed ``Access-Control-Max-Age``.
    """

    def __init__(self, app, headers: Mapping[str, str] | None = None, max_age: int = PREFLIGHT_MAX_AGE) -> None:
        super().__init__(app)
        self.headers = dict(headers if headers is not None else CORS_HEADERS)
        self.max_age = max_age

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=204)
            response.headers.update(self.headers)
            response.headers["Access-Control-Max-Age"] = str(self.max_age)
            return response

        response = await call_next(request)
        response.headers.update(self.headers)
        return response


__all__ = ["CORSHeadersMiddleware", "CORS_HEADERS", "PREFLIGHT_MAX_AGE"]
