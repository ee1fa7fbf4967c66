# coincatcher/services/pricing_service.py
import asyncio
import json
import logging
from decimal import Decimal
from typing import Dict, List, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from ..config import Config
from ..exceptions import ExternalServiceError, ValidationError
from .conversion import COINS_PER_USD, usd_to_coins

logger = logging.getLogger(__name__)

ESTIMATE_TYPES = ("pkr", "uc", "ff_diamond")

# Store prices in USD
PKR_USD_AMOUNTS = [1, 5, 10]
UC_USD_PRICES: Dict[int, str] = {60: "0.99", 120: "1.99", 180: "2.99"}
DIAMOND_USD_PRICES: Dict[int, str] = {100: "0.99", 310: "2.99", 520: "4.99"}

SYSTEM_PROMPT = (
    "You are a financial assistant for a gaming rewards app. "
    "Answer with a single JSON object and nothing else."
)


class _Option(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coin_cost: int = Field(alias="coinCost")


class PkrOption(_Option):
    pkr: Decimal
    usd: Decimal


class UcOption(_Option):
    uc: int


class DiamondOption(_Option):
    diamonds: int


class WithdrawalEstimate(BaseModel):
    """Advisory withdrawal options; never used to move balances"""
    model_config = ConfigDict(populate_by_name=True)

    pkr_options: Optional[List[PkrOption]] = Field(None, alias="pkrOptions")
    uc_options: Optional[List[UcOption]] = Field(None, alias="ucOptions")
    diamond_options: Optional[List[DiamondOption]] = Field(None, alias="diamondOptions")
    insufficient_funds: bool = Field(alias="insufficientFunds")
    message: str


def build_prompt(withdrawal_type: str, user_coins: int) -> str:
    uc_prices = ", ".join(f"{uc} UC costs ${usd}" for uc, usd in UC_USD_PRICES.items())
    diamond_prices = ", ".join(
        f"{diamonds} Diamonds cost ${usd}" for diamonds, usd in DIAMOND_USD_PRICES.items()
    )
    return (
        f"The base conversion rate is {COINS_PER_USD:,} coins = 1 USD.\n"
        f"The user has {user_coins} coins. The requested calculation type is "
        f"'{withdrawal_type}'.\n\n"
        f"- For 'pkr': give options for withdrawing "
        f"{', '.join(str(usd) for usd in PKR_USD_AMOUNTS)} USD as 'pkrOptions' items "
        "{pkr, usd, coinCost}, using the current USD to PKR exchange rate.\n"
        f"- For 'uc': {uc_prices}. Return 'ucOptions' items {{uc, coinCost}}.\n"
        f"- For 'ff_diamond': {diamond_prices}. Return 'diamondOptions' items "
        "{diamonds, coinCost}.\n"
        "coinCost is the USD price times the coin rate, rounded to the nearest whole number. "
        "Set 'insufficientFunds' to true when the user cannot afford the smallest option and "
        "explain in 'message'; otherwise set it to false and 'message' to "
        "'Here are your options.'."
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


class PricingService:
    """Withdrawal option estimates from an external text-generation API"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model: Optional[str] = None, timeout: Optional[int] = None):
        self.api_key = api_key if api_key is not None else Config.PRICING_API_KEY
        self.base_url = (base_url or Config.PRICING_API_BASE_URL).rstrip("/")
        self.model = model or Config.PRICING_MODEL
        self.timeout = timeout or Config.PRICING_TIMEOUT

    async def _complete(self, prompt: str) -> str:
        """Send the prompt, return the model's text answer"""
        if not self.api_key:
            raise ExternalServiceError()

        payload = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"}
                ) as response:
                    if response.status != 200:
                        logger.warning(f"Pricing API returned {response.status}")
                        raise ExternalServiceError()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Pricing API request failed: {e}")
            raise ExternalServiceError() from e

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError() from e

    async def estimate(self, withdrawal_type: str, user_coins: int) -> WithdrawalEstimate:
        """Options for ``withdrawal_type`` with coin costs fixed by local rounding"""
        if withdrawal_type not in ESTIMATE_TYPES:
            raise ValidationError("Choose pkr, uc or ff_diamond.")

        answer = await self._complete(build_prompt(withdrawal_type, user_coins))
        try:
            estimate = WithdrawalEstimate.model_validate(json.loads(_strip_fences(answer)))
        except (json.JSONDecodeError, SchemaError) as e:
            logger.warning(f"Pricing API returned an invalid estimate: {e}")
            raise ExternalServiceError() from e

        return self._settle(estimate, withdrawal_type, user_coins)

    @staticmethod
    def _settle(estimate: WithdrawalEstimate, withdrawal_type: str,
                user_coins: int) -> WithdrawalEstimate:
        """Recompute coin costs and affordability deterministically"""
        if withdrawal_type == "pkr":
            options = estimate.pkr_options or []
            for option in options:
                option.coin_cost = usd_to_coins(option.usd)
        elif withdrawal_type == "uc":
            # Only tiers from the fixed price table are offered
            options = [o for o in estimate.uc_options or [] if o.uc in UC_USD_PRICES]
            for option in options:
                option.coin_cost = usd_to_coins(UC_USD_PRICES[option.uc])
            estimate.uc_options = options
        else:
            options = [
                o for o in estimate.diamond_options or [] if o.diamonds in DIAMOND_USD_PRICES
            ]
            for option in options:
                option.coin_cost = usd_to_coins(DIAMOND_USD_PRICES[option.diamonds])
            estimate.diamond_options = options

        if not options:
            raise ExternalServiceError()

        cheapest = min(option.coin_cost for option in options)
        estimate.insufficient_funds = user_coins < cheapest
        if estimate.insufficient_funds:
            estimate.message = (
                f"You need at least {cheapest:,} coins for the smallest option; "
                f"you have {user_coins:,}."
            )
        else:
            estimate.message = "Here are your options."
        return estimate
