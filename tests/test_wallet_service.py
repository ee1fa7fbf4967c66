from decimal import Decimal

import pytest

from coincatcher.exceptions import (
    AccountBlockedError, ConversionUnavailableError, InsufficientBalanceError,
    NotFoundError, ValidationError
)
from coincatcher.models.wallet import Currency, TransactionType
from coincatcher.services.conversion import coins_to_local, local_to_coins, usd_to_coins
from coincatcher.services.wallet_service import parse_amount


def test_coins_to_local():
    assert coins_to_local(100000, 300) == Decimal(300)
    assert coins_to_local(0, 300) == 0
    assert coins_to_local(1, 300) == Decimal("0.003")


def test_local_to_coins_rounds_half_up():
    assert local_to_coins(150, 300) == 50000
    assert local_to_coins(1, 300) == 333
    assert local_to_coins(Decimal("0.000015"), 3) == 1


def test_usd_to_coins():
    assert usd_to_coins("0.99") == 99000
    assert usd_to_coins(Decimal("4.99")) == 499000
    assert usd_to_coins("0.000005") == 1


def test_parse_amount():
    assert parse_amount("12.5", Currency.PKR) == Decimal("12.5")
    with pytest.raises(ValidationError):
        parse_amount("12.5", Currency.COINS)
    with pytest.raises(ValidationError):
        parse_amount("abc", Currency.PKR)
    with pytest.raises(ValidationError):
        parse_amount("0", Currency.PKR)
    with pytest.raises(ValidationError):
        parse_amount("NaN", Currency.PKR)


async def test_convert_requires_a_rate(wallet, alice):
    with pytest.raises(ConversionUnavailableError):
        await wallet.convert(alice.account_id, 100)


async def test_convert_coins_to_pkr(wallet, users, admin_service, admin, clock, alice):
    await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(300))
    await admin_service.give_bonus(admin, alice.account_id, 99800, "test")
    clock.advance(minutes=1)

    result = await wallet.convert(alice.account_id, 100000)

    assert result.pkr_amount == Decimal(300)
    assert result.coins_left == 0
    account = await users.get_account(alice.account_id)
    assert account.coins == 0
    assert account.pkr_balance == Decimal(300)

    debit, credit = sorted(
        (await wallet.history(alice.account_id, limit=2)), key=lambda entry: entry.currency.value
    )
    assert debit.currency == Currency.COINS and debit.amount == -100000
    assert credit.currency == Currency.PKR and credit.amount == 300
    assert debit.reference_id == credit.reference_id
    assert debit.type == credit.type == TransactionType.CONVERSION


async def test_convert_beyond_balance_changes_nothing(wallet, users, admin_service, admin, alice):
    await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(300))

    with pytest.raises(InsufficientBalanceError):
        await wallet.convert(alice.account_id, alice.coins + 1)

    account = await users.get_account(alice.account_id)
    assert account.coins == alice.coins
    assert account.pkr_balance == 0
    assert len(await wallet.history(alice.account_id)) == 1


async def test_transfer_coins(wallet, users, alice, bob):
    entry = await wallet.transfer(alice.account_id, bob.account_id, "50", Currency.COINS)

    assert entry.amount == -50
    assert (await users.get_account(alice.account_id)).coins == alice.coins - 50
    assert (await users.get_account(bob.account_id)).coins == bob.coins + 50
    for account_id in (alice.account_id, bob.account_id):
        reports = await wallet.reconcile(account_id)
        assert all(report.balanced for report in reports.values())


async def test_transfer_pkr_beyond_balance(wallet, alice, bob):
    with pytest.raises(InsufficientBalanceError):
        await wallet.transfer(alice.account_id, bob.account_id, "10.50", Currency.PKR)


async def test_transfer_validation(wallet, admin_service, admin, alice, bob):
    with pytest.raises(ValidationError):
        await wallet.transfer(alice.account_id, alice.account_id, 10, Currency.COINS)
    with pytest.raises(ValidationError):
        await wallet.transfer(alice.account_id, bob.account_id, -10, Currency.COINS)
    with pytest.raises(NotFoundError):
        await wallet.transfer(alice.account_id, "999", 10, Currency.COINS)

    await admin_service.set_blocked(admin, alice.account_id, True)
    with pytest.raises(AccountBlockedError):
        await wallet.transfer(alice.account_id, bob.account_id, 10, Currency.COINS)


async def test_history_is_newest_first(wallet, clock, alice, bob):
    for amount in (1, 2, 3):
        clock.advance(minutes=1)
        await wallet.transfer(alice.account_id, bob.account_id, amount, Currency.COINS)

    entries = await wallet.history(alice.account_id, limit=3)
    assert [entry.amount for entry in entries] == [-3, -2, -1]
    assert len(await wallet.history(alice.account_id, limit=None)) == 4


async def test_balance_shows_coin_value(wallet, admin_service, admin, alice):
    balance = await wallet.get_balance(alice)
    assert balance.coins_in_pkr is None

    await admin_service.update_wallet_config(admin, coin_to_pkr_rate=Decimal(300))
    balance = await wallet.get_balance(alice)
    assert balance.coins_in_pkr == Decimal("0.6")
