"""Telegram handlers"""
from telegram.ext import (
    CommandHandler,
    MessageHandler,
    CallbackQueryHandler,
    ConversationHandler,
    filters
)
from .base_handler import BaseHandler
from .user_handlers import UserHandler
from .wallet_handler import WalletHandler
from .friend_handlers import FriendHandler
from .admin_handlers import AdminHandler

__all__ = [
    'BaseHandler',
    'UserHandler',
    'WalletHandler',
    'FriendHandler',
    'AdminHandler',
    'CommandHandler',
    'MessageHandler',
    'CallbackQueryHandler',
    'ConversationHandler',
    'filters'
]
