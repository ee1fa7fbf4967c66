# coincatcher/services/withdrawal_service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Union

from ..config import Config
from ..database.store import WITHDRAWAL_REQUESTS, DocumentStore, StoreTransaction, new_id
from ..exceptions import (
    AccountBlockedError, InsufficientBalanceError, MissingProfileError, NotFoundError,
    PackageUnavailableError, ValidationError
)
from ..models.base import utcnow
from ..models.request import (
    RequestStatus, WithdrawalDetails, WithdrawalMethod, WithdrawalPayload,
    WithdrawalRequest, WithdrawalType
)
from ..models.user import Account, Session
from ..models.wallet import Currency, TransactionType, WalletConfig
from .access import require_admin
from .conversion import local_to_coins
from .ledger import load_account, post_entry, save_account
from .settings_service import catalog_for, load_wallet_config
from .wallet_service import parse_amount

logger = logging.getLogger(__name__)

CASH_METHODS = {
    WithdrawalMethod.JAZZCASH: "jazzcash_number",
    WithdrawalMethod.EASYPAISA: "easypaisa_number",
}

GAMES = {
    WithdrawalType.UC: (WithdrawalMethod.PUBG, "pubg_id", "PUBG Mobile"),
    WithdrawalType.DIAMOND: (WithdrawalMethod.FREEFIRE, "freefire_id", "Free Fire"),
}


async def _load_request(tx: StoreTransaction, request_id: str) -> WithdrawalRequest:
    document = await tx.get(WITHDRAWAL_REQUESTS, request_id)
    if document is None:
        raise NotFoundError("Request not found.")
    return WithdrawalRequest.model_validate(document)


class WithdrawalService:
    """Withdrawal and purchase requests: hold on create, refund on reject"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def _create(self, account_id: str, request_type: WithdrawalType,
                      price: Callable[[WalletConfig], Decimal],
                      describe: Callable[[Account, WalletConfig], WithdrawalDetails]
                      ) -> WithdrawalRequest:
        async def _request(tx: StoreTransaction) -> WithdrawalRequest:
            now = self.clock()
            account = await load_account(tx, account_id)
            if account.is_blocked:
                raise AccountBlockedError()
            config = await load_wallet_config(tx)
            pkr_amount = price(config)

            # Balance comes before the minimum and profile checks
            if pkr_amount > account.pkr_balance:
                raise InsufficientBalanceError(
                    f"You need {pkr_amount} PKR but only have {account.pkr_balance} PKR."
                )
            details = describe(account, config)

            coin_amount = None
            if config.coin_to_pkr_rate:
                coin_amount = local_to_coins(pkr_amount, config.coin_to_pkr_rate)

            request = WithdrawalRequest(
                request_id=new_id(),
                payload=WithdrawalPayload(
                    account_id=account.account_id,
                    display_name=account.display_name,
                    username=account.username,
                    request_type=request_type,
                    pkr_amount=pkr_amount,
                    coin_amount=coin_amount,
                    details=details,
                ),
                created_at=now,
            )
            await post_entry(tx, account, Currency.PKR, -pkr_amount, TransactionType.WITHDRAWAL,
                             request.title, now, reference_id=request.request_id)
            await save_account(tx, account, now)
            await tx.set(WITHDRAWAL_REQUESTS, request.request_id, request.to_document())
            return request

        request = await self.store.run_transaction(_request)
        logger.info(
            f"Account {account_id} requested {request.title} (request {request.request_id})"
        )
        return request

    async def request_withdrawal(self, account_id: str, pkr_amount: Union[int, str, Decimal],
                                 method: WithdrawalMethod) -> WithdrawalRequest:
        """Cash withdrawal to Jazzcash or Easypaisa"""
        amount = parse_amount(pkr_amount, Currency.PKR)

        def describe(account: Account, config: WalletConfig) -> WithdrawalDetails:
            if amount < Config.MIN_WITHDRAWAL_PKR:
                raise ValidationError(f"Minimum withdrawal is {Config.MIN_WITHDRAWAL_PKR} PKR.")
            if method not in CASH_METHODS:
                raise ValidationError("Choose Jazzcash or Easypaisa.")
            number = getattr(account, CASH_METHODS[method])
            if not number:
                raise MissingProfileError(
                    f"Set your {method.value} number before withdrawing."
                )
            return WithdrawalDetails(
                withdrawal_method=method,
                account_name=account.account_name,
                account_number=number,
            )

        return await self._create(account_id, WithdrawalType.PKR, lambda config: amount, describe)

    async def request_purchase(self, account_id: str, request_type: WithdrawalType,
                               package_index: int) -> WithdrawalRequest:
        """UC or diamond package purchase paid from the PKR balance"""
        if request_type not in GAMES:
            raise ValidationError("Unknown package type.")
        method, profile_field, game_name = GAMES[request_type]

        def price(config: WalletConfig) -> Decimal:
            packages = catalog_for(config, request_type)
            if not packages:
                raise PackageUnavailableError()
            if not 0 <= package_index < len(packages):
                raise NotFoundError("Package not found.")
            return packages[package_index].price

        def describe(account: Account, config: WalletConfig) -> WithdrawalDetails:
            game_id = getattr(account, profile_field)
            if not game_id:
                raise MissingProfileError(f"Set your {game_name} ID before purchasing.")
            return WithdrawalDetails(
                withdrawal_method=method,
                package_amount=catalog_for(config, request_type)[package_index].amount,
                game_id=game_id,
                game_name=game_name,
            )

        return await self._create(account_id, request_type, price, describe)

    async def approve(self, session: Session, request_id: str) -> WithdrawalRequest:
        """Admin: accept a pending request; the funds were held at creation"""

        async def _approve(tx: StoreTransaction) -> WithdrawalRequest:
            now = self.clock()
            await require_admin(tx, session)
            request = await _load_request(tx, request_id)
            request.resolve(RequestStatus.APPROVED, now, resolved_by=session.account_id)
            await tx.set(WITHDRAWAL_REQUESTS, request_id, request.to_document())
            return request

        request = await self.store.run_transaction(_approve)
        logger.info(f"Request {request_id} approved by {session.account_id}")
        return request

    async def reject(self, session: Session, request_id: str, reason: str) -> WithdrawalRequest:
        """Admin: reject a pending request and refund the held amount"""
        if not (reason or "").strip():
            raise ValidationError("A rejection reason is required.")

        async def _reject(tx: StoreTransaction) -> WithdrawalRequest:
            now = self.clock()
            await require_admin(tx, session)
            request = await _load_request(tx, request_id)
            request.resolve(RequestStatus.REJECTED, now, resolved_by=session.account_id,
                            reason=reason)

            account = await load_account(tx, request.payload.account_id)
            await post_entry(tx, account, Currency.PKR, request.payload.pkr_amount,
                             TransactionType.REFUND, f"Refund: {request.title}",
                             now, reference_id=request_id)
            await save_account(tx, account, now)
            await tx.set(WITHDRAWAL_REQUESTS, request_id, request.to_document())
            return request

        request = await self.store.run_transaction(_reject)
        logger.info(f"Request {request_id} rejected by {session.account_id}: {reason}")
        return request

    async def get_request(self, request_id: str) -> WithdrawalRequest:
        document = await self.store.get(WITHDRAWAL_REQUESTS, request_id)
        if document is None:
            raise NotFoundError("Request not found.")
        return WithdrawalRequest.model_validate(document)

    async def list_requests(self, status: Optional[RequestStatus] = None,
                            account_id: Optional[str] = None,
                            limit: Optional[int] = None) -> List[WithdrawalRequest]:
        """Requests newest first, optionally filtered by status and owner"""
        where = {}
        if status is not None:
            where["status"] = status.value
        if account_id is not None:
            where["payload"] = {"account_id": account_id}
        rows = await self.store.query(WITHDRAWAL_REQUESTS, where=where, order_by="created_at",
                                      descending=True, limit=limit)
        return [WithdrawalRequest.model_validate(row) for row in rows]
