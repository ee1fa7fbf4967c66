# coincatcher/models/user.py
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel
from .base import Timestamp, TimeStampedModel


class RewardType(str, Enum):
    HOURLY = "hourly"
    FAUCET = "faucet"
    DAILY = "daily"
    GAME = "game"


class ActivityType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"


class Account(TimeStampedModel):
    """A user's account and balances"""
    account_id: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    coins: int = 0
    pkr_balance: Decimal = Decimal(0)
    is_admin: bool = False
    is_blocked: bool = False
    logout_disabled: bool = False

    last_claims: Dict[RewardType, Timestamp] = {}
    daily_streak: int = 0
    game_points: int = 0

    referral_code: str
    referred_by: Optional[str] = None

    # Withdrawal destinations
    jazzcash_number: Optional[str] = None
    easypaisa_number: Optional[str] = None
    account_name: Optional[str] = None
    pubg_id: Optional[str] = None
    freefire_id: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.username or self.account_id


class Session(BaseModel):
    """Caller identity passed explicitly into service operations.

    ``is_admin`` is informational; admin operations re-check the stored flag.
    """
    account_id: str
    is_admin: bool = False


class Activity(BaseModel):
    activity_id: str
    type: ActivityType
    timestamp: Timestamp
