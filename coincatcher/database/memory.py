# coincatcher/database/memory.py
import asyncio
import copy
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .store import (
    ChangeCallback, Document, DocumentStore, StoreTransaction, T, Unsubscribe, matches
)

logger = logging.getLogger(__name__)

_DELETED = object()


class MemoryTransaction(StoreTransaction):
    """Buffers writes until the surrounding transaction commits"""

    def __init__(self, store: "MemoryStore"):
        self.store = store
        self.writes: Dict[Tuple[str, str], object] = {}

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        key = (collection, doc_id)
        if key in self.writes:
            pending = self.writes[key]
            return None if pending is _DELETED else copy.deepcopy(pending)
        return self.store._read(collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        if merge:
            current = await self.get(collection, doc_id) or {}
            current.update(copy.deepcopy(data))
            data = current
        self.writes[(collection, doc_id)] = copy.deepcopy(data)

    async def delete(self, collection: str, doc_id: str):
        self.writes[(collection, doc_id)] = _DELETED


class MemoryStore(DocumentStore):
    """In-process document store.

    Transactions are serialized with a lock, so a read-modify-write never
    interleaves with another one.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = defaultdict(dict)
        self._lock = asyncio.Lock()
        self._subscribers: Dict[str, List[ChangeCallback]] = defaultdict(list)

    def _read(self, collection: str, doc_id: str) -> Optional[Document]:
        document = self._collections[collection].get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def _apply(self, writes: Dict[Tuple[str, str], object]):
        for (collection, doc_id), data in writes.items():
            if data is _DELETED:
                self._collections[collection].pop(doc_id, None)
            else:
                self._collections[collection][doc_id] = data

    async def _notify(self, writes: Dict[Tuple[str, str], object]):
        for (collection, doc_id), data in writes.items():
            for callback in list(self._subscribers.get(collection, [])):
                try:
                    await callback(doc_id, None if data is _DELETED else copy.deepcopy(data))
                except Exception:
                    logger.exception("Subscriber for %s failed", collection)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return self._read(collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        await self.run_transaction(lambda tx: tx.set(collection, doc_id, data, merge=merge))

    async def delete(self, collection: str, doc_id: str):
        await self.run_transaction(lambda tx: tx.delete(collection, doc_id))

    async def query(self, collection: str, where: Optional[Document] = None,
                    order_by: Optional[str] = None, descending: bool = False,
                    limit: Optional[int] = None) -> List[Document]:
        rows = [
            copy.deepcopy(doc)
            for doc in self._collections[collection].values()
            if matches(doc, where)
        ]
        if order_by:
            rows.sort(key=lambda doc: (doc.get(order_by) is not None, doc.get(order_by)),
                      reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def run_transaction(self, fn: Callable[[MemoryTransaction], Awaitable[T]]) -> T:
        async with self._lock:
            tx = MemoryTransaction(self)
            result = await fn(tx)
            self._apply(tx.writes)
        await self._notify(tx.writes)
        return result

    async def subscribe(self, collection: str, callback: ChangeCallback) -> Unsubscribe:
        self._subscribers[collection].append(callback)

        async def unsubscribe():
            if callback in self._subscribers[collection]:
                self._subscribers[collection].remove(callback)

        return unsubscribe
