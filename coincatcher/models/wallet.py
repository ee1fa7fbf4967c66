# coincatcher/models/wallet.py
from decimal import Decimal
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field
from .base import TimeStampedModel


class Currency(str, Enum):
    COINS = "coins"
    PKR = "pkr"


class TransactionType(str, Enum):
    SIGNUP_BONUS = "signup_bonus"
    REFERRAL_BONUS = "referral_bonus"
    CLAIM = "claim"
    GAME = "game"
    ADMIN_BONUS = "admin_bonus"
    CONVERSION = "conversion"
    TRANSFER = "transfer"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"


class Transaction(TimeStampedModel):
    """Append-only ledger entry; amount is signed"""
    transaction_id: str
    account_id: str
    currency: Currency
    type: TransactionType
    amount: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    reference_id: Optional[str] = None


class Package(BaseModel):
    """A purchasable game-currency tier priced in PKR"""
    amount: int = Field(..., gt=0)
    price: Decimal = Field(..., gt=0)


class WalletConfig(BaseModel):
    """Process-wide wallet settings, stored at config/wallet"""
    coin_to_pkr_rate: Optional[Decimal] = Field(None, gt=0)
    uc_packages: List[Package] = []
    diamond_packages: List[Package] = []
