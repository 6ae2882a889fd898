import asyncio
import logging

import aiohttp

from .config import settings
from .otp import mask_otp
from ..errors.exceptions import OTPDeliveryError

logger = logging.getLogger(__name__)

BREVO_SMS_URL = "https://api.brevo.com/v3/transactionalSMS/sms"
BREVO_EMAIL_URL = "https://api.brevo.com/v3/smtp/email"


class Notifier:
    """Sends a code out-of-band. Log lines only ever carry mask_otp(code)."""

    channel = "base"

    async def send(self, identifier: str, code: str) -> None:
        raise NotImplementedError


class ConsoleNotifier(Notifier):
    """Development channel: no provider, the masked code is logged."""

    channel = "console"

    async def send(self, identifier: str, code: str) -> None:
        logger.info(
            f"[DEV MODE] OTP for {identifier}: {mask_otp(code)} "
            f"(valid for {settings.OTP_EXPIRY_MINUTES} minutes)"
        )


class BrevoNotifier(Notifier):
    url = ""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def build_payload(self, identifier: str, code: str) -> dict:
        raise NotImplementedError

    async def send(self, identifier: str, code: str) -> None:
        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = self.build_payload(identifier, code)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.url, json=payload, headers=headers) as response:
                    result = await response.json(content_type=None)
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(f"[{self.channel.upper()} ERROR] Failed to send OTP {mask_otp(code)} to {identifier}: {exc}")
            raise OTPDeliveryError(f"{self.channel} provider unreachable") from exc

        if status != 201:
            logger.error(f"[{self.channel.upper()} ERROR] Provider rejected OTP {mask_otp(code)} for {identifier}: status={status}")
            raise OTPDeliveryError(f"{self.channel} provider returned {status}")

        message_id = (result or {}).get("messageId", "unknown")
        logger.info(f"[{self.channel.upper()} SENT] OTP {mask_otp(code)} sent to {identifier}, message_id={message_id}")


class SMSNotifier(BrevoNotifier):
    channel = "sms"
    url = BREVO_SMS_URL

    def recipient(self, phone: str) -> str:
        digits = phone.lstrip("+")
        if len(digits) == 10:
            return f"{settings.SMS_COUNTRY_CODE}{digits}"
        return digits

    def build_payload(self, identifier: str, code: str) -> dict:
        return {
            "type": "transactional",
            "sender": settings.SMS_SENDER,
            "recipient": self.recipient(identifier),
            "content": (
                f"{code} is your login OTP. "
                f"It expires in {settings.OTP_EXPIRY_MINUTES} minutes. Do not share it with anyone."
            ),
        }


class EmailNotifier(BrevoNotifier):
    channel = "email"
    url = BREVO_EMAIL_URL

    def build_payload(self, identifier: str, code: str) -> dict:
        html_body = f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Your login code</h2>
            <p>Use the following One-Time Password (OTP) to sign in:</p>
            <div style="font-size: 32px; font-weight: bold; letter-spacing: 5px; font-family: 'Courier New', monospace;">{code}</div>
            <p><strong>This code will expire in {settings.OTP_EXPIRY_MINUTES} minutes.</strong></p>
            <p>If you did not request this code, please ignore this email.</p>
            <p>---<br>{settings.EMAIL_FROM_NAME}</p>
        </div>
    </body>
    </html>
    """

        text_body = f"""
Your OTP code is: {code}

This code will expire in {settings.OTP_EXPIRY_MINUTES} minutes.

If you did not request this, please ignore this email.

---
{settings.EMAIL_FROM_NAME}
    """

        return {
            "sender": {
                "name": settings.EMAIL_FROM_NAME,
                "email": settings.EMAIL_FROM_ADDRESS
            },
            "to": [{"email": identifier}],
            "subject": "Your login OTP code",
            "htmlContent": html_body,
            "textContent": text_body
        }


def build_notifier(channel: str | None = None, api_key: str | None = None) -> Notifier:
    channel = (channel or settings.OTP_DELIVERY_CHANNEL).lower()
    api_key = settings.BREVO_API_KEY if api_key is None else api_key

    if channel == "console":
        return ConsoleNotifier()
    if channel not in ("sms", "email"):
        raise ValueError(f"Unknown OTP delivery channel: {channel}")
    if not api_key:
        logger.warning(f"BREVO_API_KEY is not set, OTP delivery falls back to console instead of {channel}")
        return ConsoleNotifier()
    if channel == "sms":
        return SMSNotifier(api_key)
    return EmailNotifier(api_key)


# Built once at import, read-only afterwards
notifier = build_notifier()


def get_notifier() -> Notifier:
    return notifier
