"""
Per-IP rate limiting for the auth routes, using slowapi.

This sits in front of the per-identifier OTP throttle and only bounds how
fast a single client can hit the endpoints.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

AUTH = settings.AUTH_RATE_LIMIT
