"""
Unit tests for code generation and expiry helpers.
"""

from datetime import datetime, timedelta, timezone

from unihub.services.token_service import as_utc, codes_match, generate_code, is_expired, utcnow


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


def test_is_expired():
    now = utcnow()
    assert is_expired(now - timedelta(seconds=1), now)
    assert not is_expired(now + timedelta(minutes=5), now)
    assert not is_expired(None, now)


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert as_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert is_expired(naive, datetime(2026, 1, 1, 12, 1, tzinfo=timezone.utc))


def test_codes_match():
    assert codes_match("123456", "123456")
    assert not codes_match("123456", " 123456 ")
    assert not codes_match("123456", "654321")
    assert not codes_match(None, "123456")
