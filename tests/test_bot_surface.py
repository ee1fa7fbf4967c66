from datetime import datetime, timezone
from decimal import Decimal

import pytest

from coincatcher.bot import NotificationLog
from coincatcher.exceptions import ValidationError
from coincatcher.handlers.admin_handlers import parse_packages
from coincatcher.models.request import (
    RequestStatus, WithdrawalDetails, WithdrawalMethod, WithdrawalPayload,
    WithdrawalRequest, WithdrawalType
)
from coincatcher.models.user import RewardType
from coincatcher.models.wallet import Package
from coincatcher.services.cooldown import CooldownStatus
from coincatcher.utils.keyboards import Keyboards
from coincatcher.utils.messages import Messages

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_purchase(request_id: str = "abc123") -> WithdrawalRequest:
    return WithdrawalRequest(
        request_id=request_id,
        payload=WithdrawalPayload(
            account_id="100",
            display_name="Alice",
            username="alice",
            request_type=WithdrawalType.UC,
            pkr_amount=Decimal(250),
            coin_amount=83333,
            details=WithdrawalDetails(withdrawal_method=WithdrawalMethod.PUBG, package_amount=60,
                                      game_id="5123", game_name="PUBG Mobile"),
        ),
        created_at=NOW,
    )


def test_parse_packages():
    assert parse_packages("60:250,120:499.5") == [
        Package(amount=60, price=Decimal(250)),
        Package(amount=120, price=Decimal("499.5")),
    ]
    for raw in ("60", "60:abc", "0:250", "60:-1"):
        with pytest.raises(ValidationError):
            parse_packages(raw)


def test_package_buttons_carry_the_index():
    markup = Keyboards.packages_menu(WithdrawalType.DIAMOND, [
        Package(amount=100, price=Decimal(280)),
        Package(amount=310, price=Decimal(840)),
    ])
    data = [row[0].callback_data for row in markup.inline_keyboard]
    assert data == ["buy_diamond_0", "buy_diamond_1", "main_menu"]


def test_claim_menu_shows_countdown():
    markup = Keyboards.claim_menu({
        RewardType.HOURLY: CooldownStatus(can_claim=False, ms_remaining=3_600_000),
        RewardType.FAUCET: CooldownStatus(can_claim=True),
        RewardType.DAILY: CooldownStatus(can_claim=True),
        RewardType.GAME: CooldownStatus(can_claim=True),
    })
    first = markup.inline_keyboard[0][0]
    assert first.callback_data == "claim_hourly"
    assert first.text.endswith("01:00:00")


def test_review_buttons():
    markup = Keyboards.request_review(make_purchase())
    assert [b.callback_data for b in markup.inline_keyboard[0]] == [
        "approve_request_abc123", "reject_request_abc123"
    ]


def test_request_messages():
    request = make_purchase()
    admin_text = Messages.format_request(request, for_admin=True)
    assert "Purchase 60 UC" in admin_text
    assert "PUBG Mobile ID: 5123" in admin_text
    assert "PUBG Mobile" not in Messages.format_request(request)

    request.resolve(RequestStatus.REJECTED, NOW, resolved_by="1", reason="Invalid ID")
    notice = Messages.request_resolved(request)
    assert "Invalid ID" in notice
    assert "250.00 PKR" in notice


def test_notification_log_announces_each_status_once():
    log = NotificationLog(limit=3)
    request = make_purchase()

    assert log.first_time(request)
    assert not log.first_time(request)

    request.resolve(RequestStatus.APPROVED, NOW, resolved_by="1")
    assert log.first_time(request)
    assert not log.first_time(request)
    assert len(log) == 1


def test_notification_log_is_bounded():
    log = NotificationLog(limit=3)
    for n in range(5):
        assert log.first_time(make_purchase(f"r{n}"))
    assert len(log) == 3
    assert log.first_time(make_purchase("r0"))
    assert not log.first_time(make_purchase("r4"))
