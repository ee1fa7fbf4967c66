# coincatcher/handlers/base_handler.py
from typing import List, Optional
from telegram import InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import ContextTypes, ConversationHandler
from ..config import Config
from ..database.store import DocumentStore
from ..exceptions import LedgerError, NotFoundError
from ..models.user import Account
from ..services.user_service import UserService
from ..utils.keyboards import Keyboards
from ..utils.messages import Messages


class BaseHandler:
    """Base class for handlers"""
    def __init__(self, store: DocumentStore):
        self.store = store
        self.keyboards = Keyboards()
        self.messages = Messages()
        self.user_service = UserService(store)

    @staticmethod
    async def cancel_conversation(update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Cancel the running conversation"""
        context.user_data.clear()
        if update.callback_query:
            await update.callback_query.answer()
            await update.callback_query.edit_message_text("❌ Cancelled.")
        else:
            await update.message.reply_text("❌ Cancelled.")
        return ConversationHandler.END

    @staticmethod
    async def respond(update: Update, text: str,
                      reply_markup: Optional[InlineKeyboardMarkup] = None):
        """Edit the callback message, or reply to the command"""
        query = update.callback_query
        if query:
            await query.edit_message_text(text, reply_markup=reply_markup)
        else:
            await update.effective_message.reply_text(text, reply_markup=reply_markup)

    async def reply_error(self, update: Update, error: LedgerError):
        if update.callback_query:
            try:
                await update.callback_query.answer(str(error), show_alert=True)
                return
            except BadRequest:
                # Query was already answered
                pass
        await update.effective_message.reply_text(f"❌ {error}")

    @staticmethod
    def account_id(update: Update) -> str:
        return str(update.effective_user.id)

    async def current_account(self, update: Update) -> Account:
        """Caller's account, registering it on first contact"""
        try:
            return await self.user_service.get_account(self.account_id(update))
        except NotFoundError:
            user = update.effective_user
            registration = await self.user_service.register(
                self.account_id(update), user.full_name, user.username
            )
            return registration.account

    @staticmethod
    def args(context: ContextTypes.DEFAULT_TYPE) -> List[str]:
        return list(context.args or [])

    async def is_admin(self, user_id: int) -> bool:
        """UI gate only; services check the stored flag"""
        return user_id in Config.ADMIN_IDS
