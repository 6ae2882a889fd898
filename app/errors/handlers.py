"""Error handlers for the application"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging

from .exceptions import OTPDeliveryError, OTPGenerationError

logger = logging.getLogger(__name__)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """
    Store unavailable: transient, the caller may retry
    """
    logger.error(f"Database error on {request.url.path}: {exc.__class__.__name__}")

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable. Please try again later."}
    )


async def otp_delivery_exception_handler(request: Request, exc: OTPDeliveryError):
    logger.error(f"OTP delivery failed on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Failed to send OTP. Please try again later."}
    )


async def otp_generation_exception_handler(request: Request, exc: OTPGenerationError):
    logger.critical(f"OTP generation failed on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Failed to generate OTP."}
    )


def register_exception_handlers(app):
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(OTPDeliveryError, otp_delivery_exception_handler)
    app.add_exception_handler(OTPGenerationError, otp_generation_exception_handler)
