# coincatcher/database/store.py
"""Document store interface used by the services.

Documents are JSON-safe dicts addressed by ``(collection, doc_id)``. A
collection is a slash separated path, so per-account sub-collections look
like ``users/<id>/transactions``.
"""
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

Document = Dict[str, Any]
ChangeCallback = Callable[[str, Optional[Document]], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]
T = TypeVar("T")

# Collection names
USERS = "users"
REFERRAL_CODES = "referral_codes"
WITHDRAWAL_REQUESTS = "withdrawal_requests"
FRIEND_REQUESTS = "friend_requests"
CONFIG = "config"
WALLET_CONFIG_ID = "wallet"


def transactions_of(account_id: str) -> str:
    return f"{USERS}/{account_id}/transactions"


def activity_of(account_id: str) -> str:
    return f"{USERS}/{account_id}/activity"


def new_id() -> str:
    return uuid.uuid4().hex


def matches(document: Document, where: Optional[Document]) -> bool:
    """Nested containment: every key in ``where`` equals (or contains) the document's"""
    if not where:
        return True
    for key, expected in where.items():
        if key not in document:
            return False
        actual = document[key]
        if isinstance(expected, dict):
            if not isinstance(actual, dict) or not matches(actual, expected):
                return False
        elif actual != expected:
            return False
    return True


class StoreTransaction(ABC):
    """Reads and writes inside one all-or-nothing unit"""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str):
        ...


class DocumentStore(ABC):
    """get/set/query, transactional read-modify-write and change subscriptions"""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str):
        ...

    @abstractmethod
    async def query(self, collection: str, where: Optional[Document] = None,
                    order_by: Optional[str] = None, descending: bool = False,
                    limit: Optional[int] = None) -> List[Document]:
        ...

    @abstractmethod
    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically; it may be re-run by the store on conflict.

        Exceptions raised by ``fn`` abort the transaction and propagate.
        """

    @abstractmethod
    async def subscribe(self, collection: str, callback: ChangeCallback) -> Unsubscribe:
        """Call ``callback(doc_id, data)`` after each committed change in ``collection``.

        ``data`` is ``None`` when the document was deleted.
        """

    async def close(self):
        pass
