# coincatcher/models/request.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, FrozenSet, Generic, Optional, TypeVar
from pydantic import BaseModel
from .base import Timestamp, TimeStampedModel
from ..exceptions import InvalidStateError, ValidationError


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Resolution(BaseModel):
    """How and when a request left the pending state"""
    outcome: RequestStatus
    resolved_at: Timestamp
    resolved_by: Optional[str] = None
    reason: Optional[str] = None


P = TypeVar("P", bound=BaseModel)


class Request(TimeStampedModel, Generic[P]):
    """Pending request that moves once to a terminal outcome"""
    request_id: str
    status: RequestStatus = RequestStatus.PENDING
    payload: P
    resolution: Optional[Resolution] = None

    allowed_outcomes: ClassVar[FrozenSet[RequestStatus]] = frozenset()
    reason_required: ClassVar[FrozenSet[RequestStatus]] = frozenset()

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def resolve(self, outcome: RequestStatus, resolved_at: datetime,
                resolved_by: Optional[str] = None, reason: Optional[str] = None):
        """Move to a terminal state; terminal states never change again"""
        if not self.is_pending:
            raise InvalidStateError(
                f"Request is already {self.status.value}."
            )
        if outcome not in self.allowed_outcomes:
            raise InvalidStateError(f"'{outcome.value}' is not a valid outcome here.")
        reason = (reason or "").strip() or None
        if outcome in self.reason_required and not reason:
            raise ValidationError("A reason is required.")

        self.status = outcome
        self.resolution = Resolution(
            outcome=outcome,
            resolved_at=resolved_at,
            resolved_by=resolved_by,
            reason=reason,
        )
        self.updated_at = resolved_at


class WithdrawalType(str, Enum):
    PKR = "pkr"
    UC = "uc"
    DIAMOND = "diamond"


class WithdrawalMethod(str, Enum):
    JAZZCASH = "Jazzcash"
    EASYPAISA = "Easypaisa"
    PUBG = "PUBG"
    FREEFIRE = "FreeFire"


class WithdrawalDetails(BaseModel):
    withdrawal_method: WithdrawalMethod
    account_name: Optional[str] = None
    account_number: Optional[str] = None
    package_amount: Optional[int] = None
    game_id: Optional[str] = None
    game_name: Optional[str] = None


class WithdrawalPayload(BaseModel):
    account_id: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    request_type: WithdrawalType
    pkr_amount: Decimal
    coin_amount: Optional[int] = None
    details: WithdrawalDetails


class WithdrawalRequest(Request[WithdrawalPayload]):
    """Cash withdrawal or game-currency purchase awaiting admin review"""
    allowed_outcomes: ClassVar[FrozenSet[RequestStatus]] = frozenset(
        {RequestStatus.APPROVED, RequestStatus.REJECTED}
    )
    reason_required: ClassVar[FrozenSet[RequestStatus]] = frozenset(
        {RequestStatus.REJECTED}
    )

    @property
    def rejection_reason(self) -> Optional[str]:
        if self.status == RequestStatus.REJECTED and self.resolution:
            return self.resolution.reason
        return None

    @property
    def title(self) -> str:
        if self.payload.request_type == WithdrawalType.PKR:
            return f"Withdraw {self.payload.pkr_amount} PKR"
        return (
            f"Purchase {self.payload.details.package_amount} "
            f"{self.payload.request_type.value.upper()}"
        )


class FriendPayload(BaseModel):
    from_id: str
    to_id: str
    from_name: Optional[str] = None
    to_name: Optional[str] = None


class FriendRequest(Request[FriendPayload]):
    """Friend request; document id is the sorted participant pair"""
    allowed_outcomes: ClassVar[FrozenSet[RequestStatus]] = frozenset(
        {RequestStatus.ACCEPTED, RequestStatus.DECLINED}
    )

    @staticmethod
    def pair_key(first_id: str, second_id: str) -> str:
        return "_".join(sorted([first_id, second_id]))

    def other(self, account_id: str) -> str:
        if account_id == self.payload.from_id:
            return self.payload.to_id
        return self.payload.from_id
