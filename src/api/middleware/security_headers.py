"""Security headers middleware for adding common security headers to responses."""

from collections.abc import Awaitable, Callable, Mapping, Sequence

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

DEFAULT_HSTS_MAX_AGE = 15552000  # 180 days

STATIC_SECURITY_HEADERS: dict[str, str] = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    # Legacy XSS auditors are disabled; the CSP replaces them
    "X-XSS-Protection": "0",
}


def build_content_security_policy(directives: Mapping[str, Sequence[str]]) -> str:
    """Serialize CSP directives into a header value.

    Directives without sources (``upgrade-insecure-requests``) are emitted
    bare.

    Example:
        >>> build_content_security_policy({"default-src": ["'self'"]})
        "default-src 'self'"
    """
    parts = []
    for directive, sources in directives.items():
        parts.append(" ".join([directive, *sources]) if sources else directive)
    return "; ".join(parts)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Adds a Content-Security-Policy built from the configured directives, the
    fixed hardening headers in ``STATIC_SECURITY_HEADERS`` and, if enabled,
    Strict-Transport-Security.

    Args:
        app: The ASGI application to wrap.
        content_security_policy: CSP directives (directive -> sources).
        hsts_enabled: Whether to include HSTS header (defaults to True).
        hsts_max_age: Max age for HSTS in seconds (defaults to 180 days).
        hsts_include_subdomains: Whether to include subdomains in HSTS.
        hsts_preload: Whether to include preload directive.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        content_security_policy: Mapping[str, Sequence[str]] | None = None,
        hsts_enabled: bool = True,
        hsts_max_age: int = DEFAULT_HSTS_MAX_AGE,
        hsts_include_subdomains: bool = True,
        hsts_preload: bool = False,
    ) -> None:
        super().__init__(app)
        self.csp_header = (
            build_content_security_policy(content_security_policy)
            if content_security_policy
            else None
        )
        self.hsts_enabled = hsts_enabled
        self.hsts_max_age = hsts_max_age
        self.hsts_include_subdomains = hsts_include_subdomains
        self.hsts_preload = hsts_preload

    def _build_hsts_header(self) -> str:
        """Build the Strict-Transport-Security header value."""
        parts = [f"max-age={self.hsts_max_age}"]

        if self.hsts_include_subdomains:
            parts.append("includeSubDomains")

        if self.hsts_preload:
            parts.append("preload")

        return "; ".join(parts)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Add security headers to the response."""
        response = await call_next(request)

        if self.csp_header:
            response.headers["Content-Security-Policy"] = self.csp_header

        for header, value in STATIC_SECURITY_HEADERS.items():
            response.headers[header] = value

        if self.hsts_enabled:
            response.headers["Strict-Transport-Security"] = self._build_hsts_header()

        return response
