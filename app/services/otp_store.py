import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.otp import hash_otp, utcnow
from ..models.otp import OTPRecord

logger = logging.getLogger(__name__)


class OTPStore:
    """
    Persistence for OTP records.

    Every write is a single statement so concurrent requests for the same
    identifier rely on the database, not on process-local locks. Consumption
    in particular is a conditional UPDATE (compare-and-set on ``used``).
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        expiry_minutes: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        if expiry_minutes is None:
            expiry_minutes = settings.OTP_EXPIRY_MINUTES
        self.expiry = timedelta(minutes=expiry_minutes)

    def save(self, identifier: str, code: str) -> OTPRecord:
        now = self.clock()
        record = OTPRecord(
            identifier=identifier,
            code_hash=hash_otp(identifier, code),
            created_at=now,
            expires_at=now + self.expiry,
            used=False,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def find_valid(self, identifier: str, code: str) -> Optional[OTPRecord]:
        """Newest unused, unexpired record for this identifier and code."""
        stmt = (
            select(OTPRecord)
            .where(
                OTPRecord.identifier == identifier,
                OTPRecord.code_hash == hash_otp(identifier, code),
                OTPRecord.used.is_(False),
                OTPRecord.expires_at > self.clock(),
            )
            .order_by(OTPRecord.created_at.desc(), OTPRecord.id.desc())
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def consume(self, record: OTPRecord) -> bool:
        """Flip used False -> True. False means another request got there first."""
        stmt = (
            update(OTPRecord)
            .where(
                OTPRecord.id == record.id,
                OTPRecord.used.is_(False),
                OTPRecord.expires_at > self.clock(),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount == 1

    def count_since(self, identifier: str, since: datetime) -> int:
        stmt = select(func.count(OTPRecord.id)).where(
            OTPRecord.identifier == identifier,
            OTPRecord.created_at >= since,
        )
        return self.db.scalar(stmt) or 0

    def has_recently_verified(self, identifier: str) -> bool:
        stmt = (
            select(OTPRecord.id)
            .where(
                OTPRecord.identifier == identifier,
                OTPRecord.used.is_(True),
                OTPRecord.created_at >= self.clock() - self.expiry,
            )
            .limit(1)
        )
        return self.db.scalar(stmt) is not None

    def purge_expired(self, retain: Optional[timedelta] = None) -> int:
        """
        Delete records nobody can use or count any more.

        ``retain`` defaults to the longer of the expiry and the throttle
        window, so expired codes still count against the sender until the
        window has passed.
        """
        if retain is None:
            retain = max(self.expiry, timedelta(hours=settings.OTP_THROTTLE_WINDOW_HOURS))
        cutoff = self.clock() - retain
        stmt = (
            delete(OTPRecord)
            .where(OTPRecord.expires_at <= self.clock(), OTPRecord.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired OTP records")
        return result.rowcount
