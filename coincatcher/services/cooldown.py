# coincatcher/services/cooldown.py
"""Reward eligibility as a pure function of wall-clock time.

Nothing here does I/O. The bot renders these values for display only; the
reward service evaluates them again inside the claim transaction.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional

import pytz
from pydantic import BaseModel

from ..config import Config
from ..models.user import RewardType

_MS = timedelta(milliseconds=1)


class CooldownStatus(BaseModel):
    can_claim: bool
    ms_remaining: int = 0


def get_timezone(name: Optional[str] = None):
    return pytz.timezone(name or Config.TIMEZONE)


def cooldown_for(reward_type: RewardType) -> Optional[timedelta]:
    """Fixed window for a reward type; None for calendar-day rewards"""
    return {
        RewardType.HOURLY: Config.HOURLY_CLAIM_COOLDOWN,
        RewardType.FAUCET: Config.FAUCET_COOLDOWN,
        RewardType.GAME: Config.GAME_COOLDOWN,
    }.get(reward_type)


def evaluate_cooldown(last_claim: Optional[datetime], cooldown: timedelta,
                      now: datetime) -> CooldownStatus:
    if last_claim is None:
        return CooldownStatus(can_claim=True)
    elapsed = now - last_claim
    if elapsed >= cooldown:
        return CooldownStatus(can_claim=True)
    return CooldownStatus(can_claim=False, ms_remaining=(cooldown - elapsed) // _MS)


def local_date(moment: datetime, tz) -> date:
    return moment.astimezone(tz).date()


def evaluate_daily(last_claim: Optional[datetime], now: datetime, tz=None) -> CooldownStatus:
    """Claimable once per local calendar day"""
    tz = tz or get_timezone()
    if last_claim is None:
        return CooldownStatus(can_claim=True)
    today = local_date(now, tz)
    if local_date(last_claim, tz) < today:
        return CooldownStatus(can_claim=True)
    next_midnight = tz.localize(datetime.combine(today + timedelta(days=1), time.min))
    return CooldownStatus(can_claim=False, ms_remaining=max(0, (next_midnight - now) // _MS))


def evaluate(reward_type: RewardType, last_claim: Optional[datetime],
             now: datetime, tz=None) -> CooldownStatus:
    if reward_type == RewardType.DAILY:
        return evaluate_daily(last_claim, now, tz)
    return evaluate_cooldown(last_claim, cooldown_for(reward_type), now)


def next_streak(streak: int, last_claim: Optional[datetime], now: datetime, tz=None) -> int:
    """Streak after claiming at ``now``: +1 if the last claim was yesterday, else 1"""
    tz = tz or get_timezone()
    if last_claim is None:
        return 1
    if local_date(last_claim, tz) == local_date(now, tz) - timedelta(days=1):
        return streak + 1
    return 1


def streak_reward(streak: int, schedule: Optional[List[int]] = None) -> int:
    """Award for streak day ``streak``; the schedule wraps weekly"""
    schedule = schedule or Config.DAILY_STREAK_SCHEDULE
    return schedule[(streak - 1) % len(schedule)]
