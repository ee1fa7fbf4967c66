# coincatcher/handlers/friend_handlers.py
import logging
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..exceptions import LedgerError, ValidationError
from ..models.request import FriendRequest
from ..services.friend_service import FriendService

logger = logging.getLogger(__name__)


class FriendHandler(BaseHandler):
    """Friend requests"""
    def __init__(self, store):
        super().__init__(store)
        self.friend_service = FriendService(store)

    async def add_friend(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/addfriend <user id>"""
        args = self.args(context)
        try:
            if len(args) != 1:
                raise ValidationError("Usage: /addfriend <user id>")
            await self.current_account(update)
            request = await self.friend_service.send_request(self.account_id(update), args[0])
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(f"📨 Friend request sent to {request.payload.to_name}.")
        try:
            await context.bot.send_message(
                chat_id=int(request.payload.to_id),
                text=f"🤝 {request.payload.from_name} wants to be your friend.",
                reply_markup=self.keyboards.friend_request(request)
            )
        except (TelegramError, ValueError) as e:
            logger.warning(f"Could not notify {request.payload.to_id}: {e}")

    async def remove_friend(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/unfriend <user id>"""
        args = self.args(context)
        try:
            if len(args) != 1:
                raise ValidationError("Usage: /unfriend <user id>")
            account_id = self.account_id(update)
            await self.friend_service.remove(account_id, FriendRequest.pair_key(account_id, args[0]))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text("🗑 Removed.")

    async def friends(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Friends list, then each incoming request with its buttons"""
        account_id = self.account_id(update)
        friends = await self.friend_service.list_friends(account_id)
        incoming = await self.friend_service.incoming(account_id)

        if friends:
            names = []
            for request in friends:
                if request.payload.from_id == account_id:
                    names.append(f"• {request.payload.to_name} ({request.payload.to_id})")
                else:
                    names.append(f"• {request.payload.from_name} ({request.payload.from_id})")
            text = "👥 Your friends:\n" + "\n".join(names)
        else:
            text = "You have no friends yet. Use /addfriend <user id>."
        await update.message.reply_text(text)

        for request in incoming:
            await update.message.reply_text(
                f"🤝 Friend request from {request.payload.from_name}",
                reply_markup=self.keyboards.friend_request(request)
            )

    async def answer_request(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """friend_<accept|decline>_<request id> callback"""
        query = update.callback_query
        _, action, request_id = query.data.split('_', 2)
        try:
            request = await self.friend_service.respond(
                self.account_id(update), request_id, accept=action == "accept"
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await query.answer()
        if action == "accept":
            await query.edit_message_text(f"✅ You are now friends with {request.payload.from_name}.")
        else:
            await query.edit_message_text("❌ Friend request declined.")
