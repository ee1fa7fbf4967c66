from .admin_service import AdminService
from .friend_service import FriendService
from .pricing_service import PricingService, WithdrawalEstimate
from .reward_service import ClaimResult, GameResult, RewardService
from .settings_service import SettingsService
from .user_service import Registration, UserService
from .wallet_service import Balance, Conversion, Reconciliation, WalletService
from .withdrawal_service import WithdrawalService

__all__ = [
    'AdminService',
    'FriendService',
    'PricingService',
    'WithdrawalEstimate',
    'ClaimResult',
    'GameResult',
    'RewardService',
    'SettingsService',
    'Registration',
    'UserService',
    'Balance',
    'Conversion',
    'Reconciliation',
    'WalletService',
    'WithdrawalService',
]
