# coincatcher/bot.py
import logging
from collections import OrderedDict
from typing import Optional, Tuple
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes
from .config import Config
from .database import open_store
from .database.store import WITHDRAWAL_REQUESTS, Document, DocumentStore
from .handlers import (
    AdminHandler,
    CallbackQueryHandler,
    CommandHandler,
    FriendHandler,
    UserHandler,
    WalletHandler
)
from .models.request import RequestStatus, WithdrawalRequest
from .utils.keyboards import Keyboards
from .utils.messages import Messages

logger = logging.getLogger(__name__)


class NotificationLog:
    """Recently announced (request_id, status) pairs, oldest dropped first"""

    def __init__(self, limit: int = 1000):
        self.limit = limit
        self._seen: "OrderedDict[Tuple[str, str], None]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def first_time(self, request: WithdrawalRequest) -> bool:
        """Record the request's current status; False if already announced"""
        key = (request.request_id, request.status.value)
        if key in self._seen:
            return False
        if not request.is_pending:
            self._seen.pop((request.request_id, RequestStatus.PENDING.value), None)
        self._seen[key] = None
        while len(self._seen) > self.limit:
            self._seen.popitem(last=False)
        return True


class CoinCatcherBot:
    def __init__(self, database_url: Optional[str] = None):
        """Build the application; the store opens in post_init"""
        self.database_url = database_url
        self.store: Optional[DocumentStore] = None
        self._unsubscribe = None
        self._notified = NotificationLog()
        self.application = (
            Application.builder()
            .token(Config.TELEGRAM_TOKEN)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

    async def _post_init(self, application: Application):
        self.store = await open_store(self.database_url)
        self.setup_handlers()
        self._unsubscribe = await self.store.subscribe(WITHDRAWAL_REQUESTS, self.on_request_change)
        logger.info("Store connected, handlers registered")

    async def _post_shutdown(self, application: Application):
        if self._unsubscribe:
            await self._unsubscribe()
        if self.store:
            await self.store.close()
        logger.info("Store closed")

    def setup_handlers(self):
        """Register the bot's handlers"""
        users = UserHandler(self.store)
        wallet = WalletHandler(self.store)
        friends = FriendHandler(self.store)
        admin = AdminHandler(self.store)
        app = self.application

        # Basic handlers
        app.add_handler(CommandHandler("start", users.start))
        app.add_handler(CommandHandler("help", users.help))
        app.add_handler(CommandHandler("claim", users.show_claims))
        app.add_handler(CommandHandler("play", users.play))
        app.add_handler(CommandHandler("balance", users.balance))
        app.add_handler(CommandHandler("convert", users.convert))
        app.add_handler(CommandHandler("history", users.history))
        app.add_handler(CommandHandler("referral", users.referral))
        app.add_handler(CommandHandler("setpayment", users.set_payment))
        app.add_handler(CommandHandler("setgame", users.set_game))
        app.add_handler(CommandHandler("reconcile", users.reconcile))
        app.add_handler(CommandHandler("logout", users.logout))

        # Wallet handlers
        app.add_handler(CommandHandler("withdraw", wallet.withdraw))
        app.add_handler(CommandHandler("buy", wallet.show_packages))
        app.add_handler(CommandHandler("transfer", wallet.transfer))
        app.add_handler(CommandHandler("requests", wallet.my_requests))
        app.add_handler(CommandHandler("options", wallet.options))

        # Friend handlers
        app.add_handler(CommandHandler("addfriend", friends.add_friend))
        app.add_handler(CommandHandler("unfriend", friends.remove_friend))
        app.add_handler(CommandHandler("friends", friends.friends))

        # Admin handlers
        app.add_handler(CommandHandler("admin", admin.admin_panel))
        app.add_handler(CommandHandler("pending", admin.pending_requests))
        app.add_handler(CommandHandler("bonus", admin.give_bonus))
        app.add_handler(CommandHandler("block", admin.block_user))
        app.add_handler(CommandHandler("unblock", admin.unblock_user))
        app.add_handler(CommandHandler("lockout", admin.lockout))
        app.add_handler(CommandHandler("setrate", admin.set_rate))
        app.add_handler(CommandHandler("setpackages", admin.set_packages))
        app.add_handler(CommandHandler("users", admin.list_users))
        app.add_handler(admin.conversation_handler())

        # Callback queries
        app.add_handler(CallbackQueryHandler(users.main_menu, pattern='^main_menu$'))
        app.add_handler(CallbackQueryHandler(users.show_claims, pattern='^show_claims$'))
        app.add_handler(CallbackQueryHandler(users.claim, pattern='^claim_(hourly|faucet|daily)$'))
        app.add_handler(CallbackQueryHandler(users.balance, pattern='^my_wallet$'))
        app.add_handler(CallbackQueryHandler(users.history, pattern='^wallet_history$'))
        app.add_handler(CallbackQueryHandler(wallet.show_packages, pattern='^show_packages_'))
        app.add_handler(CallbackQueryHandler(wallet.buy_package, pattern=r'^buy_(uc|diamond)_\d+$'))
        app.add_handler(CallbackQueryHandler(friends.answer_request, pattern='^friend_(accept|decline)_'))

        app.add_error_handler(self.on_error)

    async def on_request_change(self, request_id: str, data: Optional[Document]):
        """Tell admins about new requests and owners about decisions"""
        if data is None:
            return
        request = WithdrawalRequest.model_validate(data)
        if not self._notified.first_time(request):
            return

        if request.is_pending:
            text = "📥 New request\n\n" + Messages.format_request(request, for_admin=True)
            for admin_id in Config.ADMIN_IDS:
                await self._send(admin_id, text, reply_markup=Keyboards.request_review(request))
        else:
            await self._send(int(request.payload.account_id), Messages.request_resolved(request))

    async def _send(self, chat_id: int, text: str, reply_markup=None):
        try:
            await self.application.bot.send_message(chat_id=chat_id, text=text,
                                                    reply_markup=reply_markup)
        except TelegramError as e:
            logger.warning(f"Could not notify {chat_id}: {e}")

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error("Unhandled error while processing an update", exc_info=context.error)
        if isinstance(update, Update) and update.effective_message:
            await update.effective_message.reply_text(
                "❌ Something went wrong, please try again later."
            )

    def run(self):
        """Start polling until interrupted"""
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)
