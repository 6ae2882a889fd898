import importlib
import os
import re

import pytest

from app.core import otp
from app.errors.exceptions import OTPGenerationError


def test_generate_otp_returns_six_digit_string():
    code = otp.generate_otp()
    assert re.fullmatch(r"\d{6}", code)


def test_generate_otp_stays_in_range():
    for _ in range(1000):
        value = int(otp.generate_otp())
        assert 100000 <= value <= 999999


def test_generate_otp_is_not_constant():
    codes = {otp.generate_otp() for _ in range(1000)}
    # 1000 draws from 900000 values collide only a handful of times
    assert len(codes) > 990


def test_generate_otp_draws_from_full_range(monkeypatch):
    calls = []

    def fake_randrange(start, stop):
        calls.append((start, stop))
        return 100000

    monkeypatch.setattr(otp._random, "randrange", fake_randrange)

    assert otp.generate_otp() == "100000"
    assert calls == [(100000, 1000000)]


@pytest.mark.parametrize("bad_value", [99, 1000000, -5])
def test_generate_otp_rejects_out_of_range_source(monkeypatch, bad_value):
    monkeypatch.setattr(otp._random, "randrange", lambda start, stop: bad_value)

    with pytest.raises(OTPGenerationError, match="unexpected value"):
        otp.generate_otp()


def test_generate_otp_propagates_source_failure(monkeypatch):
    def broken(start, stop):
        raise OSError("entropy pool unavailable")

    monkeypatch.setattr(otp._random, "randrange", broken)

    with pytest.raises(OSError):
        otp.generate_otp()


def test_import_fails_without_secure_random_source(monkeypatch):
    monkeypatch.delattr(os, "urandom")
    try:
        with pytest.raises(RuntimeError, match="secure random source is not available"):
            importlib.reload(otp)
    finally:
        monkeypatch.undo()
        importlib.reload(otp)


def test_import_fails_when_urandom_is_unimplemented(monkeypatch):
    def unimplemented(n):
        raise NotImplementedError

    monkeypatch.setattr(os, "urandom", unimplemented)
    try:
        with pytest.raises(RuntimeError, match="secure random source is not available"):
            importlib.reload(otp)
    finally:
        monkeypatch.undo()
        importlib.reload(otp)


def test_mask_otp_keeps_two_leading_characters():
    assert otp.mask_otp("847391") == "84****"


@pytest.mark.parametrize("code", ["12", "abcdef", "1234567", "12345a", " 123456", "١٢٣٤٥٦", "", None, 123456])
def test_is_well_formed_rejects(code):
    assert otp.is_well_formed(code) is False


@pytest.mark.parametrize("code", ["847391", "000123"])
def test_is_well_formed_accepts(code):
    assert otp.is_well_formed(code) is True


def test_hash_otp_is_bound_to_identifier():
    assert otp.hash_otp("9876543210", "847391") != otp.hash_otp("9876543211", "847391")
    assert otp.hash_otp("9876543210", "847391") == otp.hash_otp("9876543210", "847391")
