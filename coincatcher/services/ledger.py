# coincatcher/services/ledger.py
"""Balance changes and their transaction records.

These helpers only run inside ``DocumentStore.run_transaction`` so the
balance write and the ledger entry commit together.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from ..database.store import StoreTransaction, USERS, new_id, transactions_of
from ..exceptions import InsufficientBalanceError, NotFoundError
from ..models.user import Account
from ..models.wallet import Currency, Transaction, TransactionType


async def load_account(tx: StoreTransaction, account_id: str,
                       missing_message: str = "Account not found.") -> Account:
    document = await tx.get(USERS, account_id)
    if document is None:
        raise NotFoundError(missing_message)
    return Account.model_validate(document)


async def save_account(tx: StoreTransaction, account: Account, now: datetime):
    account.updated_at = now
    await tx.set(USERS, account.account_id, account.to_document())


async def post_entry(tx: StoreTransaction, account: Account, currency: Currency,
                     amount: Union[int, Decimal], type_: TransactionType,
                     description: str, now: datetime,
                     reference_id: Optional[str] = None) -> Transaction:
    """Apply a signed amount to the account and append the ledger entry"""
    amount = Decimal(amount)
    if currency == Currency.COINS:
        balance = account.coins + int(amount)
        if balance < 0:
            raise InsufficientBalanceError(
                f"You need {-int(amount):,} coins but only have {account.coins:,}."
            )
        account.coins = balance
    else:
        balance = account.pkr_balance + amount
        if balance < 0:
            raise InsufficientBalanceError(
                f"You need {-amount} PKR but only have {account.pkr_balance} PKR."
            )
        account.pkr_balance = balance

    transaction = Transaction(
        transaction_id=new_id(),
        account_id=account.account_id,
        currency=currency,
        type=type_,
        amount=amount,
        balance_after=Decimal(balance),
        description=description,
        reference_id=reference_id,
        created_at=now,
    )
    await tx.set(transactions_of(account.account_id), transaction.transaction_id,
                 transaction.to_document())
    return transaction
