# coincatcher/handlers/wallet_handler.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..exceptions import LedgerError, PackageUnavailableError, ValidationError
from ..models.request import WithdrawalMethod, WithdrawalType
from ..models.wallet import Currency
from ..services.pricing_service import PricingService
from ..services.settings_service import SettingsService
from ..services.wallet_service import WalletService
from ..services.withdrawal_service import WithdrawalService

CASH_METHODS = {
    "jazzcash": WithdrawalMethod.JAZZCASH,
    "easypaisa": WithdrawalMethod.EASYPAISA,
}

PACKAGE_TYPES = {
    "uc": WithdrawalType.UC,
    "diamond": WithdrawalType.DIAMOND,
    "diamonds": WithdrawalType.DIAMOND,
}


class WalletHandler(BaseHandler):
    """Wallet handler: withdrawals, purchases and transfers"""
    def __init__(self, store, pricing_service: PricingService = None):
        super().__init__(store)
        self.wallet_service = WalletService(store)
        self.withdrawal_service = WithdrawalService(store)
        self.settings_service = SettingsService(store)
        self.pricing_service = pricing_service or PricingService()

    async def withdraw(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/withdraw <amount> <jazzcash|easypaisa>"""
        args = self.args(context)
        try:
            if len(args) != 2 or args[1].lower() not in CASH_METHODS:
                raise ValidationError("Usage: /withdraw <amount> <jazzcash|easypaisa>")
            await self.current_account(update)
            request = await self.withdrawal_service.request_withdrawal(
                self.account_id(update), args[0], CASH_METHODS[args[1].lower()]
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            "✅ Your request was submitted and will be reviewed by an admin.\n\n"
            + self.messages.format_request(request)
        )

    async def show_packages(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/buy <uc|diamond> or the show_packages_<type> callback"""
        query = update.callback_query
        if query:
            await query.answer()
            key = query.data.rsplit('_', 1)[1]
        else:
            args = self.args(context)
            key = args[0].lower() if args else ""

        try:
            if key not in PACKAGE_TYPES:
                raise ValidationError("Usage: /buy <uc|diamond>")
            request_type = PACKAGE_TYPES[key]
            packages = await self.settings_service.price_catalog(request_type)
            if not packages:
                raise PackageUnavailableError()
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await self.respond(
            update,
            "🛒 Choose a package. The price is paid from your PKR balance:",
            reply_markup=self.keyboards.packages_menu(request_type, packages)
        )

    async def buy_package(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """buy_<type>_<index> callback"""
        query = update.callback_query
        _, type_value, index = query.data.split('_')
        try:
            await self.current_account(update)
            request = await self.withdrawal_service.request_purchase(
                self.account_id(update), WithdrawalType(type_value), int(index)
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await query.answer()
        await query.edit_message_text(
            "✅ Your purchase request was submitted and will be reviewed by an admin.\n\n"
            + self.messages.format_request(request)
        )

    async def transfer(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/transfer <user id> <amount> [coins|pkr]"""
        args = self.args(context)
        try:
            if len(args) not in (2, 3):
                raise ValidationError("Usage: /transfer <user id> <amount> [coins|pkr]")
            currency = Currency.COINS
            if len(args) == 3:
                if args[2].lower() not in ("coins", "pkr"):
                    raise ValidationError("Currency must be coins or pkr.")
                currency = Currency(args[2].lower())
            await self.current_account(update)
            entry = await self.wallet_service.transfer(
                self.account_id(update), args[0], args[1], currency
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(f"✅ {entry.description}")

    async def my_requests(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        requests = await self.withdrawal_service.list_requests(
            account_id=self.account_id(update), limit=10
        )
        if not requests:
            await update.message.reply_text("You have no withdrawal requests yet.")
            return

        await update.message.reply_text(
            "📝 Your requests:\n\n"
            + "\n".join(self.messages.format_request(request) for request in requests)
        )

    async def options(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/options <pkr|uc|ff_diamond>: advisory estimate"""
        args = self.args(context)
        try:
            account = await self.current_account(update)
            estimate = await self.pricing_service.estimate(
                args[0].lower() if args else "", account.coins
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(self.messages.format_estimate(estimate))
