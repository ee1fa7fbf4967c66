from datetime import datetime, timezone
from decimal import Decimal

from coincatcher.config import Config
from coincatcher.utils.formatters import (
    format_datetime, format_duration, format_large_number, format_pkr
)


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(None) == "00:00:00"
    assert format_duration(3 * 60 * 60 * 1000) == "03:00:00"
    assert format_duration(3_723_999) == "01:02:03"


def test_format_large_number():
    assert format_large_number(999) == "999"
    assert format_large_number(1500) == "1.5K"
    assert format_large_number(2_000_000) == "2M"
    assert format_large_number(3_140_000_000) == "3.1B"
    assert format_large_number(999_960) == "1M"
    assert format_large_number(999_999) == "1M"
    assert format_large_number(999_949) == "999.9K"
    assert format_large_number(999_960_000) == "1B"


def test_format_pkr_rounds_for_display():
    assert format_pkr(Decimal("1234.565")) == "1,234.57 PKR"
    assert format_pkr(300) == "300.00 PKR"


def test_format_datetime_uses_configured_zone(monkeypatch):
    monkeypatch.setattr(Config, "TIMEZONE", "Asia/Karachi")
    assert format_datetime(datetime(2024, 3, 10, 19, 30, tzinfo=timezone.utc)) == "2024-03-11 00:30:00"
    assert format_datetime(datetime(2024, 3, 10, 19, 30)) == "2024-03-11 00:30:00"
