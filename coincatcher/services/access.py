# coincatcher/services/access.py
from ..database.store import StoreTransaction
from ..exceptions import NotFoundError, PermissionDeniedError
from ..models.user import Account, Session
from .ledger import load_account


async def require_admin(tx: StoreTransaction, session: Session) -> Account:
    """Caller's stored account, if it carries the admin flag"""
    try:
        caller = await load_account(tx, session.account_id)
    except NotFoundError:
        raise PermissionDeniedError()
    if not caller.is_admin:
        raise PermissionDeniedError()
    return caller
