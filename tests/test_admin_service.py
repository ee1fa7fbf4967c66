from decimal import Decimal

import pytest

from coincatcher.exceptions import (
    AccountBlockedError, PermissionDeniedError, ValidationError
)
from coincatcher.models.user import RewardType, Session
from coincatcher.models.wallet import Package, TransactionType
from coincatcher.services.settings_service import SettingsService


async def test_bonus_to_blocked_account(admin_service, users, wallet, admin, clock, alice):
    await admin_service.set_blocked(admin, alice.account_id, True)
    before = await wallet.history(alice.account_id, limit=None)
    clock.advance(minutes=1)

    entry = await admin_service.give_bonus(admin, alice.account_id, 500, "Contest winner")

    account = await users.get_account(alice.account_id)
    assert account.coins == alice.coins + 500
    assert account.is_blocked
    after = await wallet.history(alice.account_id, limit=None)
    assert len(after) == len(before) + 1
    assert after[0].transaction_id == entry.transaction_id
    assert after[0].type == TransactionType.ADMIN_BONUS
    assert after[0].description == "Contest winner"


async def test_bonus_must_be_positive(admin_service, admin, alice):
    with pytest.raises(ValidationError):
        await admin_service.give_bonus(admin, alice.account_id, 0, "nothing")


async def test_non_admin_is_refused(admin_service, alice, bob):
    session = Session(account_id=alice.account_id, is_admin=True)

    with pytest.raises(PermissionDeniedError):
        await admin_service.give_bonus(session, bob.account_id, 500, "gift")
    with pytest.raises(PermissionDeniedError):
        await admin_service.set_blocked(session, bob.account_id, True)
    with pytest.raises(PermissionDeniedError):
        await admin_service.set_logout_disabled(session, bob.account_id, True)
    with pytest.raises(PermissionDeniedError):
        await admin_service.update_wallet_config(session, coin_to_pkr_rate=Decimal(1))
    with pytest.raises(PermissionDeniedError):
        await admin_service.list_accounts(session)


async def test_unknown_caller_is_refused(admin_service, alice):
    with pytest.raises(PermissionDeniedError):
        await admin_service.give_bonus(Session(account_id="404"), alice.account_id, 10, "x")


async def test_block_prevents_claims(admin_service, rewards, admin, alice):
    account = await admin_service.set_blocked(admin, alice.account_id, True)
    assert account.is_blocked
    with pytest.raises(AccountBlockedError):
        await rewards.claim(alice.account_id, RewardType.FAUCET)


async def test_admin_cannot_block_self(admin_service, admin):
    with pytest.raises(PermissionDeniedError):
        await admin_service.set_blocked(admin, admin.account_id, True)


async def test_logout_disabled(admin_service, users, admin, alice):
    await admin_service.set_logout_disabled(admin, alice.account_id, True)
    with pytest.raises(PermissionDeniedError):
        await users.logout(alice.account_id)

    await admin_service.set_logout_disabled(admin, alice.account_id, False)
    await users.logout(alice.account_id)


async def test_wallet_config_partial_update(admin_service, store, admin):
    await admin_service.update_wallet_config(
        admin, coin_to_pkr_rate=Decimal(300), uc_packages=[Package(amount=60, price=Decimal(250))]
    )
    await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal("312.5"))

    config = await SettingsService(store).get_wallet_config()
    assert config.coin_to_pkr_rate == Decimal("312.5")
    assert config.uc_packages == [Package(amount=60, price=Decimal(250))]
    assert config.diamond_packages == []

    with pytest.raises(ValidationError):
        await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(0))
    for rate in ("NaN", "Infinity", "-Infinity"):
        with pytest.raises(ValidationError):
            await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(rate))
    assert (await admin_service.update_wallet_config(admin)).coin_to_pkr_rate == Decimal("312.5")


async def test_list_accounts(admin_service, admin, clock, alice, bob):
    accounts = await admin_service.list_accounts(admin)
    assert {a.account_id for a in accounts} == {admin.account_id, alice.account_id, bob.account_id}
