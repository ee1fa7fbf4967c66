# coincatcher/services/friend_service.py
import logging
from datetime import datetime
from typing import Callable, List

from ..database.store import FRIEND_REQUESTS, DocumentStore, StoreTransaction
from ..exceptions import (
    DuplicateRequestError, NotFoundError, PermissionDeniedError, ValidationError
)
from ..models.base import utcnow
from ..models.request import FriendPayload, FriendRequest, RequestStatus
from .ledger import load_account

logger = logging.getLogger(__name__)


async def _load_request(tx: StoreTransaction, request_id: str) -> FriendRequest:
    document = await tx.get(FRIEND_REQUESTS, request_id)
    if document is None:
        raise NotFoundError("Friend request not found.")
    return FriendRequest.model_validate(document)


class FriendService:
    """Friend requests between accounts, one per unordered pair"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def send_request(self, from_id: str, to_id: str) -> FriendRequest:
        if from_id == to_id:
            raise ValidationError("You cannot add yourself.")
        request_id = FriendRequest.pair_key(from_id, to_id)

        async def _send(tx: StoreTransaction) -> FriendRequest:
            sender = await load_account(tx, from_id)
            recipient = await load_account(tx, to_id, "User not found.")
            existing = await tx.get(FRIEND_REQUESTS, request_id)
            if existing is not None:
                status = FriendRequest.model_validate(existing).status
                if status in (RequestStatus.PENDING, RequestStatus.ACCEPTED):
                    raise DuplicateRequestError(
                        "A friend request already exists or you are already friends."
                    )

            request = FriendRequest(
                request_id=request_id,
                payload=FriendPayload(
                    from_id=from_id,
                    to_id=to_id,
                    from_name=sender.label,
                    to_name=recipient.label,
                ),
                created_at=self.clock(),
            )
            await tx.set(FRIEND_REQUESTS, request_id, request.to_document())
            return request

        request = await self.store.run_transaction(_send)
        logger.info(f"Friend request {from_id} -> {to_id}")
        return request

    async def respond(self, account_id: str, request_id: str, accept: bool) -> FriendRequest:
        """Recipient accepts or declines"""

        async def _respond(tx: StoreTransaction) -> FriendRequest:
            request = await _load_request(tx, request_id)
            if request.payload.to_id != account_id:
                raise PermissionDeniedError("Only the recipient can answer this request.")
            outcome = RequestStatus.ACCEPTED if accept else RequestStatus.DECLINED
            request.resolve(outcome, self.clock(), resolved_by=account_id)
            await tx.set(FRIEND_REQUESTS, request_id, request.to_document())
            return request

        return await self.store.run_transaction(_respond)

    async def remove(self, account_id: str, request_id: str):
        """Either participant removes the friendship or request"""

        async def _remove(tx: StoreTransaction):
            request = await _load_request(tx, request_id)
            if account_id not in (request.payload.from_id, request.payload.to_id):
                raise PermissionDeniedError()
            await tx.delete(FRIEND_REQUESTS, request_id)

        await self.store.run_transaction(_remove)

    async def _involving(self, account_id: str) -> List[FriendRequest]:
        sent = await self.store.query(FRIEND_REQUESTS, where={"payload": {"from_id": account_id}})
        received = await self.store.query(FRIEND_REQUESTS, where={"payload": {"to_id": account_id}})
        return [FriendRequest.model_validate(row) for row in sent + received]

    async def list_friends(self, account_id: str) -> List[FriendRequest]:
        return [
            request for request in await self._involving(account_id)
            if request.status == RequestStatus.ACCEPTED
        ]

    async def incoming(self, account_id: str) -> List[FriendRequest]:
        rows = await self.store.query(
            FRIEND_REQUESTS,
            where={"status": RequestStatus.PENDING.value, "payload": {"to_id": account_id}},
            order_by="created_at",
            descending=True,
        )
        return [FriendRequest.model_validate(row) for row in rows]
