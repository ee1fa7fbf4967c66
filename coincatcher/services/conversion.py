# coincatcher/services/conversion.py
"""Coin and currency arithmetic. Exact; rounding only where stated."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Rates are quoted per this many coins
RATE_BASE = 100_000
# Coins that make one US dollar
COINS_PER_USD = 100_000

Number = Union[int, Decimal, str]


def coins_to_local(coins: int, rate: Number) -> Decimal:
    """Local currency for ``coins`` at ``rate`` local units per 100,000 coins"""
    return Decimal(coins) * Decimal(rate) / RATE_BASE


def local_to_coins(amount: Number, rate: Number) -> int:
    """Coins equivalent of a local amount, to the nearest whole coin"""
    coins = Decimal(amount) * RATE_BASE / Decimal(rate)
    return int(coins.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def usd_to_coins(usd: Number) -> int:
    """Coin cost of a USD price, rounded half-up to a whole coin"""
    coins = Decimal(str(usd)) * COINS_PER_USD
    return int(coins.quantize(Decimal(1), rounding=ROUND_HALF_UP))
