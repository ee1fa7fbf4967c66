# coincatcher/utils/formatters.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union
import pytz
from ..config import Config


def format_duration(ms: Optional[int]) -> str:
    """Countdown as HH:MM:SS"""
    if ms is None or ms <= 0:
        return "00:00:00"
    total_seconds = ms // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


UNITS = ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K"))


def format_large_number(num: Optional[Union[int, float, Decimal]]) -> str:
    """Compact form: 1.5K, 2M, 3.1B"""
    if num is None:
        return "0"
    for index, (threshold, suffix) in enumerate(UNITS):
        if num >= threshold:
            formatted = f"{num / threshold:.1f}"
            # 999,960 rounds up to 1000.0K; show it as 1M
            if float(formatted) >= 1000 and index > 0:
                threshold, suffix = UNITS[index - 1]
                formatted = f"{num / threshold:.1f}"
            if formatted.endswith(".0"):
                formatted = formatted[:-2]
            return formatted + suffix
    return f"{num:,}"


def format_pkr(amount: Union[int, Decimal]) -> str:
    """Round to paisa for display; stored balances stay exact"""
    rounded = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{rounded:,.2f} PKR"


def format_datetime(dt: datetime) -> str:
    """Date and time in the configured timezone"""
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local_time = dt.astimezone(local_tz)
    return local_time.strftime("%Y-%m-%d %H:%M:%S")
