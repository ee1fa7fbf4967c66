# coincatcher/utils/keyboards.py
from typing import Dict, List
from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from ..models.request import FriendRequest, WithdrawalRequest, WithdrawalType
from ..models.user import RewardType
from ..models.wallet import Package
from ..services.cooldown import CooldownStatus
from .formatters import format_duration, format_pkr

REWARD_LABELS = {
    RewardType.HOURLY: "⏰ Hourly",
    RewardType.FAUCET: "🚰 Faucet",
    RewardType.DAILY: "📅 Daily",
}


class Keyboards:
    @staticmethod
    def main_menu() -> InlineKeyboardMarkup:
        """Main menu keyboard"""
        keyboard = [
            [InlineKeyboardButton("🎁 Claim rewards", callback_data="show_claims"),
             InlineKeyboardButton("👛 My wallet", callback_data="my_wallet")],
            [InlineKeyboardButton("🎮 Buy UC", callback_data="show_packages_uc"),
             InlineKeyboardButton("💎 Buy diamonds", callback_data="show_packages_diamond")],
            [InlineKeyboardButton("📝 History", callback_data="wallet_history")]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def claim_menu(status: Dict[RewardType, CooldownStatus]) -> InlineKeyboardMarkup:
        """One button per timed reward, showing the countdown when not ready"""
        keyboard = []
        for reward_type, label in REWARD_LABELS.items():
            reward_status = status[reward_type]
            if reward_status.can_claim:
                text = f"{label} ✅"
            else:
                text = f"{label} {format_duration(reward_status.ms_remaining)}"
            keyboard.append([InlineKeyboardButton(text, callback_data=f"claim_{reward_type.value}")])
        keyboard.append([InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")])
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def wallet_menu() -> InlineKeyboardMarkup:
        """Wallet keyboard"""
        keyboard = [
            [InlineKeyboardButton("📊 Recent transactions", callback_data="wallet_history")],
            [InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def packages_menu(request_type: WithdrawalType, packages: List[Package]) -> InlineKeyboardMarkup:
        """Package tiers; callback data carries the catalog index"""
        unit = "UC" if request_type == WithdrawalType.UC else "Diamonds"
        keyboard = [
            [InlineKeyboardButton(
                f"{package.amount} {unit} - {format_pkr(package.price)}",
                callback_data=f"buy_{request_type.value}_{index}"
            )]
            for index, package in enumerate(packages)
        ]
        keyboard.append([InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")])
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def request_review(request: WithdrawalRequest) -> InlineKeyboardMarkup:
        """Admin approve/reject buttons for a pending request"""
        keyboard = [[
            InlineKeyboardButton("✅ Approve", callback_data=f"approve_request_{request.request_id}"),
            InlineKeyboardButton("❌ Reject", callback_data=f"reject_request_{request.request_id}")
        ]]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def cancel_rejection(request_id: str) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup([[
            InlineKeyboardButton("🔙 Cancel", callback_data=f"cancel_rejection_{request_id}")
        ]])

    @staticmethod
    def friend_request(request: FriendRequest) -> InlineKeyboardMarkup:
        keyboard = [[
            InlineKeyboardButton("✅ Accept", callback_data=f"friend_accept_{request.request_id}"),
            InlineKeyboardButton("❌ Decline", callback_data=f"friend_decline_{request.request_id}")
        ]]
        return InlineKeyboardMarkup(keyboard)
