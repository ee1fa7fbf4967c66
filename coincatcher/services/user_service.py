# coincatcher/services/user_service.py
import logging
import secrets
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel

from ..config import Config
from ..database.store import (
    REFERRAL_CODES, USERS, DocumentStore, StoreTransaction, activity_of, new_id
)
from ..exceptions import (
    AccountBlockedError, NotFoundError, PermissionDeniedError, StoreError, ValidationError
)
from ..models.base import utcnow
from ..models.user import Account, Activity, ActivityType, Session
from ..models.wallet import Currency, TransactionType
from .ledger import load_account, post_entry, save_account

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"jazzcash_number", "easypaisa_number", "account_name", "pubg_id", "freefire_id"}


class Registration(BaseModel):
    account: Account
    created: bool
    referred: bool = False


class UserService:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow,
                 admin_ids: Optional[Iterable[int]] = None):
        self.store = store
        self.clock = clock
        self.admin_ids = set(Config.ADMIN_IDS if admin_ids is None else admin_ids)

    def _is_configured_admin(self, account_id: str) -> bool:
        return account_id.isdigit() and int(account_id) in self.admin_ids

    @staticmethod
    async def _reserve_referral_code(tx: StoreTransaction, account_id: str) -> str:
        for _ in range(5):
            code = f"REF{secrets.token_hex(3).upper()}"
            if await tx.get(REFERRAL_CODES, code) is None:
                await tx.set(REFERRAL_CODES, code, {"account_id": account_id})
                return code
        raise StoreError("Could not assign a referral code, please try again.")

    async def register(self, account_id: str, display_name: Optional[str] = None,
                       username: Optional[str] = None,
                       referral_code: Optional[str] = None) -> Registration:
        """Create the account with its welcome bonus; existing accounts are returned as-is"""

        async def _register(tx: StoreTransaction) -> Registration:
            now = self.clock()
            existing = await tx.get(USERS, account_id)
            if existing is not None:
                return Registration(account=Account.model_validate(existing), created=False)

            account = Account(
                account_id=account_id,
                display_name=display_name,
                username=username,
                is_admin=self._is_configured_admin(account_id),
                referral_code=await self._reserve_referral_code(tx, account_id),
                created_at=now,
            )
            await post_entry(tx, account, Currency.COINS, Config.SIGNUP_BONUS,
                             TransactionType.SIGNUP_BONUS, "Welcome bonus", now)

            referred = False
            if referral_code:
                owner = await tx.get(REFERRAL_CODES, referral_code.strip().upper())
                if owner is not None and owner["account_id"] != account_id:
                    referrer = await load_account(tx, owner["account_id"])
                    await post_entry(tx, referrer, Currency.COINS, Config.REFERRAL_BONUS,
                                     TransactionType.REFERRAL_BONUS,
                                     f"Referral bonus for inviting {account.label}",
                                     now, reference_id=account_id)
                    await save_account(tx, referrer, now)
                    account.referred_by = referrer.account_id
                    referred = True

            await save_account(tx, account, now)
            return Registration(account=account, created=True, referred=referred)

        result = await self.store.run_transaction(_register)
        if result.created:
            logger.info(
                f"Registered account {account_id}"
                + (f" referred by {result.account.referred_by}" if result.referred else "")
            )
        return result

    async def get_account(self, account_id: str) -> Account:
        document = await self.store.get(USERS, account_id)
        if document is None:
            raise NotFoundError("Account not found.")
        return Account.model_validate(document)

    async def open_session(self, account_id: str) -> Session:
        account = await self.get_account(account_id)
        return Session(account_id=account.account_id, is_admin=account.is_admin)

    async def update_profile(self, account_id: str, **fields: str) -> Account:
        """Set withdrawal destinations (payment numbers, game ids)"""
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown profile field: {', '.join(sorted(unknown))}")
        values = {key: (value or "").strip() for key, value in fields.items()}
        if not all(values.values()):
            raise ValidationError("Profile values cannot be empty.")

        async def _update(tx: StoreTransaction) -> Account:
            account = await load_account(tx, account_id)
            if account.is_blocked:
                raise AccountBlockedError()
            for key, value in values.items():
                setattr(account, key, value)
            await save_account(tx, account, self.clock())
            return account

        return await self.store.run_transaction(_update)

    async def _record(self, tx: StoreTransaction, account_id: str,
                      activity_type: ActivityType) -> Activity:
        activity = Activity(activity_id=new_id(), type=activity_type, timestamp=self.clock())
        await tx.set(activity_of(account_id), activity.activity_id,
                     activity.model_dump(mode="json"))
        return activity

    async def record_login(self, account_id: str) -> Activity:
        async def _login(tx: StoreTransaction) -> Activity:
            await load_account(tx, account_id)
            return await self._record(tx, account_id, ActivityType.LOGIN)

        return await self.store.run_transaction(_login)

    async def logout(self, account_id: str) -> Activity:
        """Log out unless an admin disabled logout for this account"""

        async def _logout(tx: StoreTransaction) -> Activity:
            account = await load_account(tx, account_id)
            if account.logout_disabled:
                raise PermissionDeniedError("Logout has been disabled for your account.")
            return await self._record(tx, account_id, ActivityType.LOGOUT)

        return await self.store.run_transaction(_logout)

    async def list_activity(self, account_id: str, limit: int = 20) -> List[Activity]:
        rows = await self.store.query(activity_of(account_id), order_by="timestamp",
                                      descending=True, limit=limit)
        return [Activity.model_validate(row) for row in rows]
