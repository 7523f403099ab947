"""Client address resolution."""

from starlette.datastructures import Headers
from starlette.types import Scope

UNKNOWN_CLIENT = "unknown"


def get_client_host(scope: Scope, *, trust_proxy_headers: bool = False) -> str:
    """Return the address identifying the client of a request.

    Proxy headers are only honoured when the deployment sits behind a proxy
    that sets them; otherwise any client could choose its own identity.

    Args:
        scope: The ASGI connection scope.
        trust_proxy_headers: Use the first ``X-Forwarded-For`` hop, then
            ``X-Real-IP``, before the socket peer address.

    Returns:
        str: The client address, or ``"unknown"``.
    """
    if trust_proxy_headers:
        headers = Headers(scope=scope)
        if forwarded_for := headers.get("x-forwarded-for"):
            return forwarded_for.split(",")[0].strip()
        if real_ip := headers.get("x-real-ip"):
            return real_ip.strip()

    client = scope.get("client")
    if client:
        return client[0]
    return UNKNOWN_CLIENT
