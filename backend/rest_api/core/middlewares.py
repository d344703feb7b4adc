"""
HTTP hardening middlewares: response security headers and JSON-only bodies.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.settings import settings


# JSON API: nothing may be framed, sniffed, embedded or cached
_STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cache-Control": "no-store",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(_STATIC_HEADERS)
        if "server" in response.headers:
            del response.headers["server"]
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response


class ContentTypeValidationMiddleware(BaseHTTPMiddleware):
    """Reject bodies that are not application/json with 415."""

    BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type")
        if (
            request.method in self.BODY_METHODS
            and content_type
            and not content_type.startswith("application/json")
        ):
            return JSONResponse(
                status_code=415,
                content={"detail": "Request body must be application/json"},
            )
        return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    # Starlette runs the last-added middleware first: content type is checked
    # before headers are decorated.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ContentTypeValidationMiddleware)
