# coincatcher/handlers/admin_handlers.py
from decimal import Decimal, InvalidOperation
from typing import List
from telegram import Update
from telegram.ext import (
    ContextTypes, ConversationHandler, CommandHandler,
    MessageHandler, CallbackQueryHandler, filters
)
from .base_handler import BaseHandler
from ..exceptions import InvalidStateError, LedgerError, PermissionDeniedError, ValidationError
from ..models.request import RequestStatus, WithdrawalType
from ..models.user import Session
from ..models.wallet import Package
from ..services.admin_service import AdminService
from ..services.withdrawal_service import WithdrawalService

WAITING_REJECTION_REASON = 0

ADMIN_HELP = (
    "🔧 Admin panel\n\n"
    "/pending - pending withdrawal requests\n"
    "/bonus <user id> <coins> [reason]\n"
    "/block <user id>, /unblock <user id>\n"
    "/lockout <user id> <on|off> - disable logout\n"
    "/setrate <PKR per 100,000 coins>\n"
    "/setpackages <uc|diamond> 60:250,120:500\n"
    "/users - latest accounts"
)


def parse_packages(raw: str) -> List[Package]:
    """``amount:price`` pairs separated by commas"""
    packages = []
    for item in raw.split(","):
        try:
            amount, price = item.split(":")
            packages.append(Package(amount=int(amount), price=Decimal(price)))
        except (ValueError, InvalidOperation):
            raise ValidationError(f"Invalid package '{item}'. Use amount:price, e.g. 60:250")
    return packages


class AdminHandler(BaseHandler):
    """Admin commands"""

    def __init__(self, store):
        super().__init__(store)
        self.admin_service = AdminService(store)
        self.withdrawal_service = WithdrawalService(store)

    async def session(self, update: Update) -> Session:
        """Caller session; non-admins never get past the UI gate"""
        if not await self.is_admin(update.effective_user.id):
            raise PermissionDeniedError()
        return await self.user_service.open_session(self.account_id(update))

    async def admin_panel(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Show the admin commands"""
        if not await self.is_admin(update.effective_user.id):
            await update.message.reply_text("⛔️ You do not have access to this section.")
            return

        await update.message.reply_text(ADMIN_HELP)

    async def pending_requests(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """One message per pending request with approve/reject buttons"""
        try:
            await self.session(update)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        requests = await self.withdrawal_service.list_requests(status=RequestStatus.PENDING)
        if not requests:
            await update.message.reply_text("✅ No pending requests.")
            return

        for request in requests:
            await update.message.reply_text(
                self.messages.format_request(request, for_admin=True),
                reply_markup=self.keyboards.request_review(request)
            )

    async def handle_request_review(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Approve right away, or ask for the rejection reason"""
        query = update.callback_query
        action, _, request_id = query.data.split('_', 2)

        try:
            session = await self.session(update)
            if action == "approve":
                request = await self.withdrawal_service.approve(session, request_id)
            else:
                request = await self.withdrawal_service.get_request(request_id)
                if not request.is_pending:
                    raise InvalidStateError(f"Request is already {request.status.value}.")
        except LedgerError as e:
            await self.reply_error(update, e)
            return ConversationHandler.END

        await query.answer()
        if action == "approve":
            await query.edit_message_text(self.messages.format_request(request, for_admin=True))
            return ConversationHandler.END

        context.user_data['pending_rejection'] = request_id
        await query.edit_message_text(
            self.messages.format_request(request, for_admin=True)
            + "\n❓ Please send the rejection reason:",
            reply_markup=self.keyboards.cancel_rejection(request_id)
        )
        return WAITING_REJECTION_REASON

    async def handle_rejection_reason(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        request_id = context.user_data.get('pending_rejection')
        if not request_id:
            await update.message.reply_text("❌ No request is waiting for a reason.")
            return ConversationHandler.END

        try:
            session = await self.session(update)
            request = await self.withdrawal_service.reject(session, request_id, update.message.text)
        except ValidationError as e:
            # Empty reason: keep waiting
            await self.reply_error(update, e)
            return WAITING_REJECTION_REASON
        except LedgerError as e:
            await self.reply_error(update, e)
            context.user_data.pop('pending_rejection', None)
            return ConversationHandler.END

        context.user_data.pop('pending_rejection', None)
        await update.message.reply_text(
            "✅ Request rejected and refunded.\n\n"
            + self.messages.format_request(request, for_admin=True)
        )
        return ConversationHandler.END

    def conversation_handler(self) -> ConversationHandler:
        return ConversationHandler(
            entry_points=[
                CallbackQueryHandler(
                    self.handle_request_review,
                    pattern='^(approve|reject)_request_'
                )
            ],
            states={
                WAITING_REJECTION_REASON: [
                    MessageHandler(
                        filters.TEXT & ~filters.COMMAND,
                        self.handle_rejection_reason
                    )
                ]
            },
            fallbacks=[
                CallbackQueryHandler(
                    self.cancel_conversation,
                    pattern='^cancel_rejection_'
                ),
                CommandHandler('cancel', self.cancel_conversation)
            ]
        )

    async def give_bonus(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/bonus <user id> <coins> [reason]"""
        args = self.args(context)
        try:
            if len(args) < 2 or not args[1].isdigit():
                raise ValidationError("Usage: /bonus <user id> <coins> [reason]")
            session = await self.session(update)
            entry = await self.admin_service.give_bonus(
                session, args[0], int(args[1]), " ".join(args[2:])
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            f"✅ {int(entry.amount):,} coins sent to {args[0]}. "
            f"New balance: {int(entry.balance_after):,} coins."
        )

    async def _toggle(self, update: Update, context: ContextTypes.DEFAULT_TYPE,
                      blocked: bool):
        args = self.args(context)
        try:
            if len(args) != 1:
                raise ValidationError("Usage: /block <user id> or /unblock <user id>")
            session = await self.session(update)
            account = await self.admin_service.set_blocked(session, args[0], blocked)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            f"{'🚫 Blocked' if blocked else '✅ Unblocked'}: {account.label}"
        )

    async def block_user(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._toggle(update, context, True)

    async def unblock_user(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._toggle(update, context, False)

    async def lockout(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/lockout <user id> <on|off>"""
        args = self.args(context)
        try:
            if len(args) != 2 or args[1].lower() not in ("on", "off"):
                raise ValidationError("Usage: /lockout <user id> <on|off>")
            session = await self.session(update)
            account = await self.admin_service.set_logout_disabled(
                session, args[0], args[1].lower() == "on"
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        state = "disabled" if account.logout_disabled else "enabled"
        await update.message.reply_text(f"✅ Logout {state} for {account.label}.")

    async def set_rate(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/setrate <PKR per 100,000 coins>"""
        args = self.args(context)
        try:
            if len(args) != 1:
                raise ValidationError("Usage: /setrate <PKR per 100,000 coins>")
            try:
                rate = Decimal(args[0])
            except InvalidOperation:
                raise ValidationError("Please enter a valid number.")
            session = await self.session(update)
            config = await self.admin_service.update_wallet_config(session, coin_to_pkr_rate=rate)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            f"✅ Rate set: 100,000 coins = {config.coin_to_pkr_rate} PKR"
        )

    async def set_packages(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/setpackages <uc|diamond> 60:250,120:500"""
        args = self.args(context)
        try:
            if len(args) != 2 or args[0].lower() not in ("uc", "diamond"):
                raise ValidationError("Usage: /setpackages <uc|diamond> 60:250,120:500")
            packages = parse_packages(args[1])
            session = await self.session(update)
            if WithdrawalType(args[0].lower()) == WithdrawalType.UC:
                await self.admin_service.update_wallet_config(session, uc_packages=packages)
            else:
                await self.admin_service.update_wallet_config(session, diamond_packages=packages)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(f"✅ {len(packages)} {args[0].lower()} package(s) saved.")

    async def list_users(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        try:
            session = await self.session(update)
            accounts = await self.admin_service.list_accounts(session, limit=20)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        if not accounts:
            await update.message.reply_text("No users yet.")
            return
        await update.message.reply_text(
            "👥 Latest users:\n\n" + "\n".join(self.messages.format_account(a) for a in accounts)
        )
