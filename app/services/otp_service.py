# OTP lifecycle: throttle -> generate -> save -> deliver, then verify -> consume

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ..core.config import settings
from ..core.notifier import Notifier
from ..core.otp import generate_otp, is_well_formed, mask_otp
from ..models.otp import OTPRecord
from .otp_store import OTPStore

logger = logging.getLogger(__name__)

INVALID_OTP_REASON = "Invalid or expired OTP"


@dataclass
class RequestResult:
    throttled: bool
    sent: bool


@dataclass
class VerifyResult:
    consumed: bool
    reason: Optional[str] = None
    record: Optional[OTPRecord] = None


class OTPService:
    """
    Issues and verifies one-time passwords for a phone number or email.

    Holds no state of its own besides configuration; everything shared lives
    in the store.
    """

    def __init__(
        self,
        store: OTPStore,
        notifier: Notifier,
        throttle_max: Optional[int] = None,
        throttle_window_hours: Optional[int] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.throttle_max = throttle_max if throttle_max is not None else settings.OTP_THROTTLE_MAX
        self.throttle_window = timedelta(
            hours=throttle_window_hours if throttle_window_hours is not None else settings.OTP_THROTTLE_WINDOW_HOURS
        )

    def is_throttled(self, identifier: str) -> bool:
        """Counts every record created inside the window, used or expired alike."""
        since = self.store.clock() - self.throttle_window
        return self.store.count_since(identifier, since) >= self.throttle_max

    async def request_code(self, identifier: str) -> RequestResult:
        # Denied requests create no record, so they do not use up quota.
        # Count and insert are separate statements: concurrent sends for one
        # identifier from several workers can each pass the count, so the
        # limit is approximate by up to (workers - 1) extra codes.
        if self.is_throttled(identifier):
            logger.warning(f"OTP request throttled for {identifier}")
            return RequestResult(throttled=True, sent=False)

        code = generate_otp()
        self.store.save(identifier, code)
        await self.notifier.send(identifier, code)
        logger.info(f"OTP {mask_otp(code)} issued for {identifier} via {self.notifier.channel}")
        return RequestResult(throttled=False, sent=True)

    def verify(self, identifier: str, code) -> VerifyResult:
        if not is_well_formed(code):
            return VerifyResult(consumed=False, reason=INVALID_OTP_REASON)

        record = self.store.find_valid(identifier, code)
        if record is None:
            logger.info(f"OTP rejected for {identifier}")
            return VerifyResult(consumed=False, reason=INVALID_OTP_REASON)

        if not self.store.consume(record):
            # Lost the race to a concurrent verify of the same code
            logger.warning(f"OTP already consumed for {identifier}")
            return VerifyResult(consumed=False, reason=INVALID_OTP_REASON)

        logger.info(f"OTP verified for {identifier}")
        return VerifyResult(consumed=True, record=record)

    def verify_code(self, identifier: str, code) -> VerifyResult:
        return self.verify(identifier, code)

    def confirm_recent_verification(self, identifier: str) -> bool:
        return self.store.has_recently_verified(identifier)
