from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from coincatcher.exceptions import InvalidStateError, ValidationError
from coincatcher.models.request import (
    FriendPayload, FriendRequest, RequestStatus, WithdrawalDetails, WithdrawalMethod,
    WithdrawalPayload, WithdrawalRequest, WithdrawalType
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_withdrawal(created_at: datetime = NOW) -> WithdrawalRequest:
    return WithdrawalRequest(
        request_id="r1",
        payload=WithdrawalPayload(
            account_id="100",
            request_type=WithdrawalType.PKR,
            pkr_amount=Decimal("150"),
            details=WithdrawalDetails(withdrawal_method=WithdrawalMethod.EASYPAISA,
                                      account_number="0345"),
        ),
        created_at=created_at,
    )


def test_withdrawal_outcomes():
    request = make_withdrawal()
    assert request.title == "Withdraw 150 PKR"

    with pytest.raises(InvalidStateError):
        request.resolve(RequestStatus.ACCEPTED, NOW)
    with pytest.raises(ValidationError):
        request.resolve(RequestStatus.REJECTED, NOW, reason="")
    assert request.is_pending

    request.resolve(RequestStatus.REJECTED, NOW, resolved_by="1", reason=" duplicate ")
    assert request.rejection_reason == "duplicate"
    assert request.updated_at == NOW
    with pytest.raises(InvalidStateError):
        request.resolve(RequestStatus.APPROVED, NOW)


def test_request_survives_storage():
    request = make_withdrawal()
    request.resolve(RequestStatus.APPROVED, NOW, resolved_by="1")

    loaded = WithdrawalRequest.model_validate(request.to_document())
    assert loaded == request
    assert loaded.rejection_reason is None


def test_friend_request_outcomes():
    request = FriendRequest(
        request_id=FriendRequest.pair_key("b", "a"),
        payload=FriendPayload(from_id="b", to_id="a"),
        created_at=NOW,
    )
    assert request.request_id == "a_b"
    assert request.other("a") == "b"

    with pytest.raises(InvalidStateError):
        request.resolve(RequestStatus.APPROVED, NOW)
    request.resolve(RequestStatus.DECLINED, NOW)
    assert request.status == RequestStatus.DECLINED


def test_stored_timestamps_sort_in_time_order():
    whole = make_withdrawal(NOW).to_document()["created_at"]
    fraction = make_withdrawal(NOW + timedelta(milliseconds=500)).to_document()["created_at"]

    assert whole == "2024-03-10T12:00:00.000000Z"
    assert sorted([fraction, whole]) == [whole, fraction]
    assert WithdrawalRequest.model_validate(make_withdrawal(NOW).to_document()).created_at == NOW
