from fastapi import Depends
from sqlalchemy.orm import Session
from .core.database import get_db
from .core.notifier import Notifier, get_notifier
from .services.otp_store import OTPStore
from .services.otp_service import OTPService


def get_otp_service(db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)) -> OTPService:
    return OTPService(OTPStore(db), notifier)
