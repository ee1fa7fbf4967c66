# coincatcher/services/wallet_service.py
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from ..database.store import USERS, DocumentStore, StoreTransaction, new_id, transactions_of
from ..exceptions import (
    AccountBlockedError, ConversionUnavailableError, NotFoundError, ValidationError
)
from ..models.base import utcnow
from ..models.user import Account
from ..models.wallet import Currency, Transaction, TransactionType
from .conversion import coins_to_local
from .ledger import load_account, post_entry, save_account
from .settings_service import SettingsService, load_wallet_config

logger = logging.getLogger(__name__)


class Balance(BaseModel):
    coins: int
    pkr_balance: Decimal
    coins_in_pkr: Optional[Decimal] = None


class Conversion(BaseModel):
    coins: int
    pkr_amount: Decimal
    coins_left: int
    pkr_balance: Decimal


class Reconciliation(BaseModel):
    currency: Currency
    balance: Decimal
    ledger_total: Decimal

    @property
    def balanced(self) -> bool:
        return self.balance == self.ledger_total


def parse_amount(raw: Union[str, int, Decimal], currency: Currency) -> Decimal:
    """Positive amount; whole numbers for coins"""
    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        raise ValidationError("Please enter a valid number.")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be positive.")
    if currency == Currency.COINS and amount != amount.to_integral_value():
        raise ValidationError("Coins can only be sent in whole numbers.")
    return amount


class WalletService:
    """Balances, coin conversion, transfers and ledger history"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.settings = SettingsService(store)

    async def get_balance(self, account: Account) -> Balance:
        """Balances plus the PKR value of the coins at the current rate"""
        config = await self.settings.get_wallet_config()
        coins_in_pkr = None
        if config.coin_to_pkr_rate:
            coins_in_pkr = coins_to_local(account.coins, config.coin_to_pkr_rate)
        return Balance(coins=account.coins, pkr_balance=account.pkr_balance,
                       coins_in_pkr=coins_in_pkr)

    async def history(self, account_id: str, limit: Optional[int] = 10) -> List[Transaction]:
        """Ledger entries, newest first"""
        rows = await self.store.query(transactions_of(account_id), order_by="created_at",
                                      descending=True, limit=limit)
        return [Transaction.model_validate(row) for row in rows]

    async def convert(self, account_id: str, coins: int) -> Conversion:
        """Exchange coins for PKR balance at the admin rate"""
        if coins <= 0:
            raise ValidationError("Amount must be positive.")

        async def _convert(tx: StoreTransaction) -> Conversion:
            now = self.clock()
            account = await load_account(tx, account_id)
            if account.is_blocked:
                raise AccountBlockedError()
            config = await load_wallet_config(tx)
            if not config.coin_to_pkr_rate:
                raise ConversionUnavailableError()

            pkr_amount = coins_to_local(coins, config.coin_to_pkr_rate)
            reference_id = new_id()
            await post_entry(tx, account, Currency.COINS, -coins, TransactionType.CONVERSION,
                             f"Converted {coins:,} coins to PKR", now, reference_id)
            await post_entry(tx, account, Currency.PKR, pkr_amount, TransactionType.CONVERSION,
                             f"Received {pkr_amount} PKR for {coins:,} coins", now, reference_id)
            await save_account(tx, account, now)
            return Conversion(coins=coins, pkr_amount=pkr_amount,
                              coins_left=account.coins, pkr_balance=account.pkr_balance)

        result = await self.store.run_transaction(_convert)
        logger.info(f"Account {account_id} converted {coins} coins to {result.pkr_amount} PKR")
        return result

    async def transfer(self, sender_id: str, recipient_id: str,
                       amount: Union[str, int, Decimal], currency: Currency) -> Transaction:
        """Send coins or PKR to another account"""
        amount = parse_amount(amount, currency)
        if sender_id == recipient_id:
            raise ValidationError("You cannot send funds to yourself.")

        async def _transfer(tx: StoreTransaction) -> Transaction:
            now = self.clock()
            sender = await load_account(tx, sender_id)
            if sender.is_blocked:
                raise AccountBlockedError()
            recipient = await load_account(tx, recipient_id, "Recipient not found.")

            reference_id = new_id()
            unit = "coins" if currency == Currency.COINS else "PKR"
            debit = await post_entry(tx, sender, currency, -amount, TransactionType.TRANSFER,
                                     f"Sent {amount} {unit} to {recipient.label}",
                                     now, reference_id)
            await post_entry(tx, recipient, currency, amount, TransactionType.TRANSFER,
                             f"Received {amount} {unit} from {sender.label}", now, reference_id)
            await save_account(tx, sender, now)
            await save_account(tx, recipient, now)
            return debit

        result = await self.store.run_transaction(_transfer)
        logger.info(f"Transfer {amount} {currency.value} from {sender_id} to {recipient_id}")
        return result

    async def reconcile(self, account_id: str) -> Dict[Currency, Reconciliation]:
        """Compare each balance with the sum of its ledger entries"""
        document = await self.store.get(USERS, account_id)
        if document is None:
            raise NotFoundError("Account not found.")
        account = Account.model_validate(document)
        entries = await self.history(account_id, limit=None)
        totals = {currency: Decimal(0) for currency in Currency}
        for entry in entries:
            totals[entry.currency] += entry.amount
        return {
            Currency.COINS: Reconciliation(currency=Currency.COINS,
                                           balance=Decimal(account.coins),
                                           ledger_total=totals[Currency.COINS]),
            Currency.PKR: Reconciliation(currency=Currency.PKR,
                                         balance=account.pkr_balance,
                                         ledger_total=totals[Currency.PKR]),
        }
