"""One-time password primitives: generation, format checks, hashing and masking."""
import hashlib
import hmac
import os
import re
import secrets
from datetime import datetime, timezone

from .config import settings
from ..errors.exceptions import OTPGenerationError

OTP_LENGTH = 6
OTP_MIN = 100000
OTP_MAX = 1000000  # exclusive
OTP_MASK = "****"

_OTP_PATTERN = re.compile(r"[0-9]{6}")


def _require_secure_source():
    # Refuse to import (and so to serve) without an OS entropy source.
    urandom = getattr(os, "urandom", None)
    if not callable(urandom):
        raise RuntimeError("secure random source is not available: os.urandom is missing")
    try:
        urandom(1)
    except NotImplementedError as exc:
        raise RuntimeError("secure random source is not available") from exc
    return secrets.SystemRandom()


_random = _require_secure_source()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_otp() -> str:
    """Generate a 6-digit OTP code uniformly from 100000-999999."""
    value = _random.randrange(OTP_MIN, OTP_MAX)
    if not OTP_MIN <= value < OTP_MAX:
        raise OTPGenerationError("OTP generation produced an unexpected value")
    return str(value)


def is_well_formed(code) -> bool:
    return isinstance(code, str) and _OTP_PATTERN.fullmatch(code) is not None


def hash_otp(identifier: str, code: str) -> str:
    """Keyed hash of an OTP, bound to the identifier it was issued for."""
    message = f"{identifier}:{code}".encode("utf-8")
    return hmac.new(settings.OTP_HASH_SECRET.encode("utf-8"), message, hashlib.sha256).hexdigest()


def mask_otp(code: str) -> str:
    """'847391' -> '84****'. Only this form may appear in logs."""
    return f"{code[:2]}{OTP_MASK}"
