"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Usage in routes:
    from fastapi import Request
    from vidguard.core.rate_limit import limiter

    @router.post("/analyze")
    @limiter.limit("20/minute")
    async def analyze(request: Request, payload: FileDescriptor):
        ...

Wired into the app in main.py together with the RateLimitExceeded handler.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Key requests by client IP.
limiter = Limiter(key_func=get_remote_address)
