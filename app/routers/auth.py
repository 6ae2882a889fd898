import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from ..core.database import get_db
from ..core.rate_limit import limiter, AUTH
from ..core.security import create_user_token, get_current_user
from ..dependencies import get_otp_service
from ..errors.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    InvalidOTPException,
    TooManyRequestsException,
)
from ..schemas.auth import (
    SendOTPRequest,
    VerifyOTPRequest,
    RegisterRequest,
    MessageResponse,
    VerifyOTPResponse,
    RegisterResponse,
    UserResponse,
)
from ..services.otp_service import OTPService
from ..models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _check_channel(payload: SendOTPRequest, channel: str):
    # sms and email can only reach their own kind of identifier; console takes both
    if channel == "email" and payload.email is None:
        raise BadRequestException("Email address required for OTP delivery.")
    if channel == "sms" and payload.phone is None:
        raise BadRequestException("Phone number required for OTP delivery.")


@router.post("/send-otp", response_model=MessageResponse)
@limiter.limit(AUTH)
async def send_otp(request: Request, payload: SendOTPRequest, otp_service: OTPService = Depends(get_otp_service)):
    """Check the per-identifier throttle, then generate, store and deliver a new OTP."""
    _check_channel(payload, otp_service.notifier.channel)

    result = await otp_service.request_code(payload.identifier)
    if result.throttled:
        raise TooManyRequestsException("Too many OTP requests. Please try again later.")
    return MessageResponse(message="OTP sent successfully.")


@router.post("/verify", response_model=VerifyOTPResponse)
@limiter.limit(AUTH)
def verify_otp(
    request: Request,
    payload: VerifyOTPRequest,
    otp_service: OTPService = Depends(get_otp_service),
    db: Session = Depends(get_db),
):
    """Consume the OTP. Returning users get a token, new users must register next."""
    result = otp_service.verify_code(payload.identifier, payload.otp)
    if not result.consumed:
        raise InvalidOTPException()

    if payload.phone is not None:
        user = db.query(User).filter(User.phone == payload.phone).first()
    else:
        user = db.query(User).filter(User.email == str(payload.email)).first()
    if not user:
        return VerifyOTPResponse(is_new_user=True)

    logger.info(f"Returning user logged in: id={user.id}")
    return VerifyOTPResponse(
        is_new_user=False,
        user=UserResponse.model_validate(user),
        access_token=create_user_token(user),
        token_type="bearer",
    )


@router.post("/register", response_model=RegisterResponse)
@limiter.limit(AUTH)
def register(
    request: Request,
    payload: RegisterRequest,
    otp_service: OTPService = Depends(get_otp_service),
    db: Session = Depends(get_db),
):
    email = str(payload.email) if payload.email is not None else None

    # The phone, or the email when given, must have passed /verify within the expiry window
    verified = otp_service.confirm_recent_verification(payload.phone) or (
        email is not None and otp_service.confirm_recent_verification(email)
    )
    if not verified:
        raise ForbiddenException("Phone number not verified. Please complete OTP verification first.")

    if db.query(User).filter(User.phone == payload.phone).first():
        raise ConflictException("User with this phone number already exists.")
    if email is not None and db.query(User).filter(User.email == email).first():
        raise ConflictException("User with this email already exists.")

    user = User(phone=payload.phone, email=email, name=payload.name, age=payload.age, gender=payload.gender)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"New user registered: id={user.id}")

    return RegisterResponse(user=UserResponse.model_validate(user), access_token=create_user_token(user))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)
