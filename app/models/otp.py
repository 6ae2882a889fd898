from sqlalchemy import Integer, String, DateTime, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from ..core.database import Base

class OTPRecord(Base):
    """One issued code. Never reused: every send inserts a new row."""
    __tablename__ = "otp_records"
    __table_args__ = (
        Index("ix_otp_records_identifier_created_at", "identifier", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<OTPRecord(id={self.id}, identifier={self.identifier!r}, "
            f"expires_at={self.expires_at}, used={self.used})>"
        )
