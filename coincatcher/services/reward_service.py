# coincatcher/services/reward_service.py
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from ..config import Config
from ..database.store import USERS, DocumentStore, StoreTransaction
from ..exceptions import AccountBlockedError, IneligibleError, NotFoundError, ValidationError
from ..models.base import utcnow
from ..models.user import Account, RewardType
from ..models.wallet import Currency, TransactionType
from ..utils.formatters import format_duration
from . import cooldown
from .ledger import load_account, post_entry, save_account

logger = logging.getLogger(__name__)

CLAIM_DESCRIPTIONS = {
    RewardType.HOURLY: "Hourly reward",
    RewardType.FAUCET: "Faucet reward",
}


class ClaimResult(BaseModel):
    reward_type: RewardType
    amount_awarded: int
    new_streak: Optional[int] = None
    coins: int


class GameResult(BaseModel):
    coins_awarded: int
    points_carried: int
    coins: int


class RewardService:
    """Timed claims, daily streak and mini-game payouts"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow,
                 tz=None, schedule: Optional[List[int]] = None):
        self.store = store
        self.clock = clock
        self.tz = tz or cooldown.get_timezone()
        self.schedule = schedule or Config.DAILY_STREAK_SCHEDULE

    def fixed_amount(self, reward_type: RewardType) -> int:
        return {
            RewardType.HOURLY: Config.HOURLY_CLAIM_AMOUNT,
            RewardType.FAUCET: Config.FAUCET_CLAIM_AMOUNT,
        }[reward_type]

    def _check_eligible(self, account: Account, reward_type: RewardType, now: datetime):
        if account.is_blocked:
            raise AccountBlockedError()
        status = cooldown.evaluate(
            reward_type, account.last_claims.get(reward_type), now, self.tz
        )
        if not status.can_claim:
            if reward_type == RewardType.DAILY:
                message = "You already claimed today's reward."
            else:
                message = "This reward is not available yet."
            raise IneligibleError(
                f"{message} Try again in {format_duration(status.ms_remaining)}.",
                ms_remaining=status.ms_remaining,
            )

    async def status(self, account_id: str) -> Dict[RewardType, cooldown.CooldownStatus]:
        """Advisory eligibility for every reward type"""
        document = await self.store.get(USERS, account_id)
        if document is None:
            raise NotFoundError("Account not found.")
        account = Account.model_validate(document)
        now = self.clock()
        return {
            reward_type: cooldown.evaluate(
                reward_type, account.last_claims.get(reward_type), now, self.tz
            )
            for reward_type in RewardType
        }

    async def claim(self, account_id: str, reward_type: RewardType) -> ClaimResult:
        """Claim a timed reward; eligibility is re-checked inside the transaction"""
        if reward_type == RewardType.GAME:
            raise ValidationError("Game rewards are paid through play().")

        async def _claim(tx: StoreTransaction) -> ClaimResult:
            now = self.clock()
            account = await load_account(tx, account_id)
            self._check_eligible(account, reward_type, now)

            new_streak = None
            if reward_type == RewardType.DAILY:
                new_streak = cooldown.next_streak(
                    account.daily_streak,
                    account.last_claims.get(RewardType.DAILY),
                    now,
                    self.tz,
                )
                amount = cooldown.streak_reward(new_streak, self.schedule)
                account.daily_streak = new_streak
                description = f"Daily reward (day {new_streak})"
            else:
                amount = self.fixed_amount(reward_type)
                description = CLAIM_DESCRIPTIONS[reward_type]

            await post_entry(tx, account, Currency.COINS, amount,
                             TransactionType.CLAIM, description, now)
            account.last_claims[reward_type] = now
            await save_account(tx, account, now)

            return ClaimResult(
                reward_type=reward_type,
                amount_awarded=amount,
                new_streak=new_streak,
                coins=account.coins,
            )

        result = await self.store.run_transaction(_claim)
        logger.info(f"Account {account_id} claimed {reward_type.value}: +{result.amount_awarded} coins")
        return result

    async def play(self, account_id: str, points: int) -> GameResult:
        """Exchange mini-game points for coins, carrying the remainder forward"""
        if points < 0:
            raise ValidationError("Points cannot be negative.")

        async def _play(tx: StoreTransaction) -> GameResult:
            now = self.clock()
            account = await load_account(tx, account_id)
            self._check_eligible(account, RewardType.GAME, now)

            total = account.game_points + points
            coins, carried = divmod(total, Config.GAME_POINTS_PER_COIN)
            if coins:
                await post_entry(tx, account, Currency.COINS, coins, TransactionType.GAME,
                                 f"Game reward ({coins * Config.GAME_POINTS_PER_COIN} points)",
                                 now)
            account.game_points = carried
            account.last_claims[RewardType.GAME] = now
            await save_account(tx, account, now)

            return GameResult(coins_awarded=coins, points_carried=carried, coins=account.coins)

        result = await self.store.run_transaction(_play)
        logger.info(f"Account {account_id} scored {points} points: +{result.coins_awarded} coins")
        return result
