# coincatcher/services/admin_service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from ..database.store import CONFIG, USERS, WALLET_CONFIG_ID, DocumentStore, StoreTransaction
from ..exceptions import PermissionDeniedError, ValidationError
from ..models.base import utcnow
from ..models.user import Account, Session
from ..models.wallet import Currency, Package, Transaction, TransactionType, WalletConfig
from .access import require_admin
from .ledger import load_account, post_entry, save_account
from .settings_service import load_wallet_config

logger = logging.getLogger(__name__)


class AdminService:
    """Admin-only ledger adjustments and account flags"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def give_bonus(self, session: Session, account_id: str, amount: int,
                         reason: str) -> Transaction:
        """Credit coins to any account, blocked or not"""
        if amount <= 0:
            raise ValidationError("Bonus must be a positive number of coins.")
        reason = (reason or "").strip() or "Admin bonus"

        async def _bonus(tx: StoreTransaction) -> Transaction:
            now = self.clock()
            await require_admin(tx, session)
            account = await load_account(tx, account_id)
            entry = await post_entry(tx, account, Currency.COINS, amount,
                                     TransactionType.ADMIN_BONUS, reason, now)
            await save_account(tx, account, now)
            return entry

        entry = await self.store.run_transaction(_bonus)
        logger.info(f"Admin {session.account_id} gave {amount} coins to {account_id}: {reason}")
        return entry

    async def _set_flag(self, session: Session, account_id: str, field: str,
                        value: bool) -> Account:
        async def _update(tx: StoreTransaction) -> Account:
            caller = await require_admin(tx, session)
            if caller.account_id == account_id and value:
                raise PermissionDeniedError("You cannot apply this to your own account.")
            account = await load_account(tx, account_id)
            setattr(account, field, value)
            await save_account(tx, account, self.clock())
            return account

        account = await self.store.run_transaction(_update)
        logger.info(f"Admin {session.account_id} set {field}={value} on {account_id}")
        return account

    async def set_blocked(self, session: Session, account_id: str, blocked: bool) -> Account:
        """Block or unblock; balances and pending requests are left as they are"""
        return await self._set_flag(session, account_id, "is_blocked", blocked)

    async def set_logout_disabled(self, session: Session, account_id: str,
                                  disabled: bool) -> Account:
        return await self._set_flag(session, account_id, "logout_disabled", disabled)

    async def update_wallet_config(self, session: Session,
                                   coin_to_pkr_rate: Optional[Decimal] = None,
                                   uc_packages: Optional[List[Package]] = None,
                                   diamond_packages: Optional[List[Package]] = None
                                   ) -> WalletConfig:
        """Change the rate and/or package tiers; omitted parts keep their value"""
        if coin_to_pkr_rate is not None:
            coin_to_pkr_rate = Decimal(coin_to_pkr_rate)
            if not coin_to_pkr_rate.is_finite() or coin_to_pkr_rate <= 0:
                raise ValidationError("The rate must be a number greater than zero.")

        async def _update(tx: StoreTransaction) -> WalletConfig:
            await require_admin(tx, session)
            config = await load_wallet_config(tx)
            if coin_to_pkr_rate is not None:
                config.coin_to_pkr_rate = coin_to_pkr_rate
            if uc_packages is not None:
                config.uc_packages = uc_packages
            if diamond_packages is not None:
                config.diamond_packages = diamond_packages
            await tx.set(CONFIG, WALLET_CONFIG_ID, config.model_dump(mode="json"))
            return config

        config = await self.store.run_transaction(_update)
        logger.info(f"Admin {session.account_id} updated wallet settings")
        return config

    async def list_accounts(self, session: Session, limit: Optional[int] = 50) -> List[Account]:
        """Accounts, newest first"""
        await self.store.run_transaction(lambda tx: require_admin(tx, session))
        rows = await self.store.query(USERS, order_by="created_at", descending=True, limit=limit)
        return [Account.model_validate(row) for row in rows]
