"""HTTP middleware attaching hardening headers to every response."""

from __future__ import annotations

from fastapi import Request, Response

from app.core.exception_handlers import general_exception_handler

SECURITY_HEADERS: dict[str, str] = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "; ".join(
        [
            "default-src 'self'",
            "script-src 'self' 'unsafe-inline'",
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
            "font-src 'self' https://fonts.gstatic.com",
            "img-src 'self' data: blob: https:",
            "connect-src 'self'",
            "frame-src 'self' https://www.youtube.com https://www.youtube-nocookie.com https://player.vimeo.com",
            "frame-ancestors 'self'",
        ]
    ),
}


def apply_security_headers(response: Response) -> Response:
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Apply :data:`SECURITY_HEADERS` to every response, 429s and 500s included.

    Unexpected exceptions are rendered here rather than in the outermost
    server-error layer, so the fallback 500 still passes back through this
    middleware and the request-id middleware.
    """

    try:
        response: Response = await call_next(request)
    except Exception as exc:
        response = await general_exception_handler(request, exc)

    if request.app.state.settings.app.security_headers_enabled:
        apply_security_headers(response)
    return response
