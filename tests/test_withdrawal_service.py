from decimal import Decimal

import pytest

from coincatcher.database.store import WITHDRAWAL_REQUESTS
from coincatcher.exceptions import (
    AccountBlockedError, InsufficientBalanceError, InvalidStateError, MissingProfileError,
    NotFoundError, PackageUnavailableError, PermissionDeniedError, ValidationError
)
from coincatcher.models.request import RequestStatus, WithdrawalMethod, WithdrawalType
from coincatcher.models.user import Session
from coincatcher.models.wallet import Currency, Package, TransactionType


@pytest.fixture
async def funded(users, wallet, admin_service, admin, clock, alice):
    """Alice with 300 PKR and a Jazzcash number"""
    await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(300))
    await admin_service.give_bonus(admin, alice.account_id, 99800, "test")
    await wallet.convert(alice.account_id, 100000)
    await users.update_profile(alice.account_id, jazzcash_number="03001234567",
                               account_name="Alice A")
    clock.advance(minutes=1)
    return await users.get_account(alice.account_id)


async def test_withdrawal_holds_funds(withdrawals, users, wallet, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)

    assert request.status == RequestStatus.PENDING
    assert request.payload.pkr_amount == 150
    assert request.payload.coin_amount == 50000
    assert request.payload.details.account_number == "03001234567"
    account = await users.get_account(funded.account_id)
    assert account.pkr_balance == Decimal(150)

    entry = (await wallet.history(funded.account_id, limit=1))[0]
    assert entry.type == TransactionType.WITHDRAWAL
    assert entry.currency == Currency.PKR
    assert entry.amount == -150
    assert entry.reference_id == request.request_id


async def test_withdrawal_over_balance_changes_nothing(withdrawals, users, wallet, store, funded):
    before = await wallet.history(funded.account_id, limit=None)

    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_withdrawal(funded.account_id, 400, WithdrawalMethod.JAZZCASH)

    account = await users.get_account(funded.account_id)
    assert account.pkr_balance == Decimal(300)
    assert len(await wallet.history(funded.account_id, limit=None)) == len(before)
    assert await store.query(WITHDRAWAL_REQUESTS) == []


async def test_balance_is_checked_before_minimum_and_profile(withdrawals, users, store, funded, bob):
    # Bob has no PKR and no Jazzcash number
    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_withdrawal(bob.account_id, 500, WithdrawalMethod.JAZZCASH)
    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_withdrawal(bob.account_id, 50, WithdrawalMethod.EASYPAISA)

    await users.update_profile(bob.account_id, jazzcash_number="03111111111")
    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_withdrawal(bob.account_id, 50, WithdrawalMethod.JAZZCASH)

    assert (await users.get_account(bob.account_id)).pkr_balance == 0
    assert await store.query(WITHDRAWAL_REQUESTS) == []


async def test_purchase_over_balance_without_game_id(withdrawals, users, admin_service, admin,
                                                     funded):
    await admin_service.update_wallet_config(
        admin, diamond_packages=[Package(amount=520, price=Decimal(1400))]
    )

    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.DIAMOND, 0)
    assert (await users.get_account(funded.account_id)).pkr_balance == Decimal(300)


async def test_withdrawal_validation(withdrawals, funded):
    with pytest.raises(ValidationError):
        await withdrawals.request_withdrawal(funded.account_id, 50, WithdrawalMethod.JAZZCASH)
    with pytest.raises(ValidationError):
        await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.PUBG)
    with pytest.raises(MissingProfileError):
        await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.EASYPAISA)


async def test_reject_refunds_exactly(withdrawals, users, wallet, admin, clock, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, "120.50", WithdrawalMethod.JAZZCASH)
    clock.advance(minutes=1)

    rejected = await withdrawals.reject(admin, request.request_id, "Wrong number")

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.rejection_reason == "Wrong number"
    assert rejected.resolution.resolved_by == admin.account_id
    account = await users.get_account(funded.account_id)
    assert account.pkr_balance == Decimal(300)

    refund = (await wallet.history(funded.account_id, limit=1))[0]
    assert refund.type == TransactionType.REFUND
    assert refund.amount == Decimal("120.50")
    assert refund.reference_id == request.request_id
    reports = await wallet.reconcile(funded.account_id)
    assert all(report.balanced for report in reports.values())


async def test_reject_requires_reason(withdrawals, admin, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)

    with pytest.raises(ValidationError):
        await withdrawals.reject(admin, request.request_id, "   ")
    assert (await withdrawals.get_request(request.request_id)).status == RequestStatus.PENDING


async def test_approve_does_not_debit_again(withdrawals, users, wallet, admin, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)
    entries = len(await wallet.history(funded.account_id, limit=None))

    approved = await withdrawals.approve(admin, request.request_id)

    assert approved.status == RequestStatus.APPROVED
    account = await users.get_account(funded.account_id)
    assert account.pkr_balance == Decimal(150)
    assert len(await wallet.history(funded.account_id, limit=None)) == entries


async def test_terminal_requests_cannot_change(withdrawals, users, admin, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)
    await withdrawals.approve(admin, request.request_id)

    with pytest.raises(InvalidStateError):
        await withdrawals.approve(admin, request.request_id)
    with pytest.raises(InvalidStateError):
        await withdrawals.reject(admin, request.request_id, "too late")
    assert (await users.get_account(funded.account_id)).pkr_balance == Decimal(150)


async def test_only_admins_review(withdrawals, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)
    forged = Session(account_id=funded.account_id, is_admin=True)

    with pytest.raises(PermissionDeniedError):
        await withdrawals.approve(forged, request.request_id)
    with pytest.raises(PermissionDeniedError):
        await withdrawals.reject(forged, request.request_id, "nope")


async def test_missing_request(withdrawals, admin):
    with pytest.raises(NotFoundError):
        await withdrawals.approve(admin, "missing")
    with pytest.raises(NotFoundError):
        await withdrawals.get_request("missing")


async def test_purchase_flow(withdrawals, users, admin_service, admin, funded):
    with pytest.raises(PackageUnavailableError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.UC, 0)

    await admin_service.update_wallet_config(
        admin, uc_packages=[Package(amount=60, price=Decimal(250)),
                            Package(amount=120, price=Decimal(500))]
    )
    with pytest.raises(MissingProfileError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.UC, 0)

    await users.update_profile(funded.account_id, pubg_id="5123456789")
    with pytest.raises(NotFoundError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.UC, 5)
    with pytest.raises(InsufficientBalanceError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.UC, 1)

    request = await withdrawals.request_purchase(funded.account_id, WithdrawalType.UC, 0)
    assert request.title == "Purchase 60 UC"
    assert request.payload.details.game_id == "5123456789"
    assert request.payload.details.withdrawal_method == WithdrawalMethod.PUBG
    assert (await users.get_account(funded.account_id)).pkr_balance == Decimal(50)


async def test_diamond_catalog_is_separate(withdrawals, admin_service, admin, funded):
    await admin_service.update_wallet_config(admin, uc_packages=[Package(amount=60, price=Decimal(250))])
    with pytest.raises(PackageUnavailableError):
        await withdrawals.request_purchase(funded.account_id, WithdrawalType.DIAMOND, 0)


async def test_blocked_account(withdrawals, users, admin_service, admin, funded):
    request = await withdrawals.request_withdrawal(funded.account_id, 150, WithdrawalMethod.JAZZCASH)
    await admin_service.set_blocked(admin, funded.account_id, True)

    with pytest.raises(AccountBlockedError):
        await withdrawals.request_withdrawal(funded.account_id, 100, WithdrawalMethod.JAZZCASH)

    # Pending requests of a blocked account can still be reviewed
    await withdrawals.reject(admin, request.request_id, "Account under review")
    assert (await users.get_account(funded.account_id)).pkr_balance == Decimal(300)


async def test_list_requests(withdrawals, admin, clock, funded, bob):
    first = await withdrawals.request_withdrawal(funded.account_id, 100, WithdrawalMethod.JAZZCASH)
    clock.advance(minutes=1)
    second = await withdrawals.request_withdrawal(funded.account_id, 100, WithdrawalMethod.JAZZCASH)
    await withdrawals.approve(admin, first.request_id)

    mine = await withdrawals.list_requests(account_id=funded.account_id)
    assert [r.request_id for r in mine] == [second.request_id, first.request_id]

    pending = await withdrawals.list_requests(status=RequestStatus.PENDING)
    assert [r.request_id for r in pending] == [second.request_id]
    assert await withdrawals.list_requests(account_id=bob.account_id) == []
