# coincatcher/utils/messages.py
from typing import Dict, List, Optional
from ..models.request import RequestStatus, WithdrawalRequest, WithdrawalType
from ..models.user import Account
from ..models.wallet import Currency, Transaction
from ..services.pricing_service import WithdrawalEstimate
from ..services.wallet_service import Balance, Reconciliation
from .formatters import format_datetime, format_large_number, format_pkr

STATUS_EMOJI = {
    RequestStatus.PENDING: "⏳",
    RequestStatus.APPROVED: "✅",
    RequestStatus.REJECTED: "❌",
}


def _amount(entry: Transaction) -> str:
    if entry.currency == Currency.PKR:
        sign = "+" if entry.amount >= 0 else "-"
        return f"{sign}{format_pkr(abs(entry.amount))}"
    return f"{int(entry.amount):+,} coins"


class Messages:
    @staticmethod
    def welcome(account: Account, created: bool, referred: bool) -> str:
        if not created:
            return f"Welcome back, {account.label}! 👋"
        text = (
            f"Hello {account.label}! 👋\n\n"
            f"Welcome to CoinCatcher. You received {account.coins:,} coins as a welcome bonus.\n"
            f"Your referral code: {account.referral_code}"
        )
        if referred:
            text += "\n\n🤝 Your friend's referral code was applied."
        return text

    @staticmethod
    def format_balance(account: Account, balance: Balance) -> str:
        """Wallet summary"""
        text = (
            f"👛 Your wallet:\n"
            f"🪙 {balance.coins:,} coins ({format_large_number(balance.coins)})\n"
            f"💰 {format_pkr(balance.pkr_balance)}\n"
        )
        if balance.coins_in_pkr is not None:
            text += f"\n≈ {format_pkr(balance.coins_in_pkr)} if you convert all coins"
        if account.is_blocked:
            text += "\n\n⛔️ Your account is blocked."
        return text

    @staticmethod
    def format_history(entries: List[Transaction]) -> str:
        if not entries:
            return "You have no transactions yet."
        lines = ["📊 Recent transactions:\n"]
        for entry in entries:
            lines.append(
                f"{format_datetime(entry.created_at)}  {_amount(entry)}\n"
                f"   {entry.description or entry.type.value}"
            )
        return "\n".join(lines)

    @staticmethod
    def format_request(request: WithdrawalRequest, for_admin: bool = False) -> str:
        """Request summary; admins also see who asked and where to pay"""
        payload = request.payload
        details = payload.details
        text = (
            f"{STATUS_EMOJI.get(request.status, '')} {request.title}\n"
            f"💰 Amount: {format_pkr(payload.pkr_amount)}\n"
        )
        if payload.coin_amount is not None:
            text += f"🪙 Coin value: {payload.coin_amount:,}\n"
        if for_admin:
            text += f"👤 User: {payload.display_name or '-'} (@{payload.username or '-'}, {payload.account_id})\n"
            if payload.request_type == WithdrawalType.PKR:
                text += (
                    f"🏦 {details.withdrawal_method.value}: {details.account_number}"
                    f" ({details.account_name or 'no name'})\n"
                )
            else:
                text += f"🎮 {details.game_name} ID: {details.game_id}\n"
        text += (
            f"📊 Status: {request.status.value}\n"
            f"🕒 Date: {format_datetime(request.created_at)}\n"
        )
        if request.rejection_reason:
            text += f"❓ Reason: {request.rejection_reason}\n"
        return text

    @staticmethod
    def request_resolved(request: WithdrawalRequest) -> str:
        """Notification sent to the request owner"""
        if request.status == RequestStatus.APPROVED:
            return f"✅ Your request was approved!\n\n{request.title}"
        return (
            f"❌ Your request was rejected.\n\n"
            f"{request.title}\n"
            f"Reason: {request.rejection_reason}\n\n"
            f"{format_pkr(request.payload.pkr_amount)} was returned to your balance."
        )

    @staticmethod
    def format_estimate(estimate: WithdrawalEstimate) -> str:
        lines = []
        for option in estimate.pkr_options or []:
            lines.append(f"• {format_pkr(option.pkr)} (${option.usd}) = {option.coin_cost:,} coins")
        for option in estimate.uc_options or []:
            lines.append(f"• {option.uc} UC = {option.coin_cost:,} coins")
        for option in estimate.diamond_options or []:
            lines.append(f"• {option.diamonds} Diamonds = {option.coin_cost:,} coins")
        return "💱 Estimated options:\n" + "\n".join(lines) + f"\n\n{estimate.message}"

    @staticmethod
    def format_reconciliation(reports: Dict[Currency, Reconciliation]) -> str:
        lines = []
        for currency, report in reports.items():
            mark = "✅" if report.balanced else "⚠️"
            lines.append(
                f"{mark} {currency.value}: balance {report.balance}, ledger {report.ledger_total}"
            )
        return "\n".join(lines)

    @staticmethod
    def format_account(account: Account, extra: Optional[str] = None) -> str:
        flags = []
        if account.is_admin:
            flags.append("admin")
        if account.is_blocked:
            flags.append("blocked")
        if account.logout_disabled:
            flags.append("logout disabled")
        text = (
            f"👤 {account.label} ({account.account_id})\n"
            f"   {account.coins:,} coins | {format_pkr(account.pkr_balance)}"
        )
        if flags:
            text += f" | {', '.join(flags)}"
        if extra:
            text += f"\n   {extra}"
        return text
