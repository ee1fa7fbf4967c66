from .base import TimeStampedModel, utcnow
from .user import Account, Activity, ActivityType, RewardType, Session
from .wallet import Currency, Package, Transaction, TransactionType, WalletConfig
from .request import (
    FriendPayload,
    FriendRequest,
    Request,
    RequestStatus,
    Resolution,
    WithdrawalDetails,
    WithdrawalMethod,
    WithdrawalPayload,
    WithdrawalRequest,
    WithdrawalType,
)

__all__ = [
    'TimeStampedModel',
    'utcnow',
    'Account',
    'Activity',
    'ActivityType',
    'RewardType',
    'Session',
    'Currency',
    'Package',
    'Transaction',
    'TransactionType',
    'WalletConfig',
    'FriendPayload',
    'FriendRequest',
    'Request',
    'RequestStatus',
    'Resolution',
    'WithdrawalDetails',
    'WithdrawalMethod',
    'WithdrawalPayload',
    'WithdrawalRequest',
    'WithdrawalType',
]
