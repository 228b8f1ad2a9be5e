from slowapi import Limiter
from starlette.requests import Request


def get_client_ip(request: Request) -> str:
    """Best-effort client address.

    Behind the reverse proxy the original client is the first entry of
    X-Forwarded-For; direct connections fall back to the socket peer.
    Used as the rate-limit key and recorded on refresh tokens.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_ip)
