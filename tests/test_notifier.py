import logging

import pytest

from app.core import notifier as notifier_module
from app.core.notifier import (
    ConsoleNotifier,
    EmailNotifier,
    SMSNotifier,
    build_notifier,
)
from app.errors.exceptions import OTPDeliveryError

PHONE = "9876543210"
CODE = "847391"


@pytest.mark.asyncio
async def test_console_notifier_masks_code(caplog):
    caplog.set_level(logging.INFO)

    await ConsoleNotifier().send(PHONE, CODE)

    assert CODE not in caplog.text
    assert "84****" in caplog.text
    assert PHONE in caplog.text


@pytest.mark.asyncio
async def test_sms_notifier_sends_full_code_but_logs_masked(fake_http, caplog):
    caplog.set_level(logging.INFO)

    await SMSNotifier("test-key").send(PHONE, CODE)

    assert len(fake_http.posts) == 1
    post = fake_http.posts[0]
    assert post["url"] == notifier_module.BREVO_SMS_URL
    assert post["headers"]["api-key"] == "test-key"
    assert post["json"]["recipient"] == f"91{PHONE}"
    assert CODE in post["json"]["content"]

    assert CODE not in caplog.text
    assert "84****" in caplog.text
    assert "abc-123" in caplog.text


@pytest.mark.asyncio
async def test_email_notifier_payload(fake_http):
    await EmailNotifier("test-key").send("user@example.com", CODE)

    post = fake_http.posts[0]
    assert post["url"] == notifier_module.BREVO_EMAIL_URL
    assert post["json"]["to"] == [{"email": "user@example.com"}]
    assert CODE in post["json"]["textContent"]
    assert CODE in post["json"]["htmlContent"]


@pytest.mark.asyncio
async def test_provider_error_raises_without_leaking_code(fake_http, caplog):
    caplog.set_level(logging.INFO)
    fake_http.status = 400
    fake_http.body = {"code": "invalid_parameter"}

    with pytest.raises(OTPDeliveryError):
        await SMSNotifier("test-key").send(PHONE, CODE)

    assert CODE not in caplog.text
    assert "84****" in caplog.text


def test_sms_recipient_keeps_international_numbers():
    sms = SMSNotifier("test-key")

    assert sms.recipient(PHONE) == f"91{PHONE}"
    assert sms.recipient("+447700900123") == "447700900123"


def test_build_notifier_selects_channel():
    assert isinstance(build_notifier("console"), ConsoleNotifier)
    assert isinstance(build_notifier("sms", api_key="key"), SMSNotifier)
    assert isinstance(build_notifier("EMAIL", api_key="key"), EmailNotifier)


def test_build_notifier_without_api_key_uses_console():
    assert isinstance(build_notifier("sms", api_key=""), ConsoleNotifier)


def test_build_notifier_rejects_unknown_channel():
    with pytest.raises(ValueError):
        build_notifier("pigeon", api_key="key")
