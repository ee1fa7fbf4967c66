from datetime import datetime, timedelta, timezone

import pytest
import pytz

from coincatcher.database.memory import MemoryStore
from coincatcher.services.admin_service import AdminService
from coincatcher.services.friend_service import FriendService
from coincatcher.services.reward_service import RewardService
from coincatcher.services.user_service import UserService
from coincatcher.services.wallet_service import WalletService
from coincatcher.services.withdrawal_service import WithdrawalService

ADMIN_ID = "1"


class FakeClock:
    """Callable clock the tests move by hand"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def users(store, clock):
    return UserService(store, clock, admin_ids=[int(ADMIN_ID)])


@pytest.fixture
def rewards(store, clock):
    return RewardService(store, clock, tz=pytz.utc)


@pytest.fixture
def wallet(store, clock):
    return WalletService(store, clock)


@pytest.fixture
def withdrawals(store, clock):
    return WithdrawalService(store, clock)


@pytest.fixture
def admin_service(store, clock):
    return AdminService(store, clock)


@pytest.fixture
def friends(store, clock):
    return FriendService(store, clock)


@pytest.fixture
async def admin(users):
    await users.register(ADMIN_ID, "Admin", "admin")
    return await users.open_session(ADMIN_ID)


@pytest.fixture
async def alice(users):
    return (await users.register("100", "Alice", "alice")).account


@pytest.fixture
async def bob(users):
    return (await users.register("200", "Bob", "bob")).account
