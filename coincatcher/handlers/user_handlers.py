# coincatcher/handlers/user_handlers.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..config import Config
from ..exceptions import IneligibleError, LedgerError, ValidationError
from ..models.user import RewardType
from ..services.reward_service import RewardService
from ..services.wallet_service import WalletService
from ..utils.formatters import format_duration

PAYMENT_FIELDS = {"jazzcash": "jazzcash_number", "easypaisa": "easypaisa_number"}
GAME_FIELDS = {"pubg": "pubg_id", "freefire": "freefire_id"}

HELP_TEXT = (
    "🪙 CoinCatcher commands:\n\n"
    "/claim - hourly, faucet and daily rewards\n"
    "/play - roll the dart for game points\n"
    "/balance - your wallet\n"
    "/convert <coins> - exchange coins for PKR\n"
    "/history - recent transactions\n"
    "/transfer <user id> <amount> [coins|pkr]\n"
    "/withdraw <amount> <jazzcash|easypaisa>\n"
    "/buy <uc|diamond> - game currency packages\n"
    "/options <pkr|uc|ff_diamond> - estimated withdrawal options\n"
    "/requests - your withdrawal requests\n"
    "/setpayment <jazzcash|easypaisa> <number> [account name]\n"
    "/setgame <pubg|freefire> <id>\n"
    "/referral - your referral code\n"
    "/addfriend <user id>, /friends\n"
    "/reconcile - check your balances against the ledger\n"
    "/logout"
)


class UserHandler(BaseHandler):
    """Regular user commands"""
    def __init__(self, store):
        super().__init__(store)
        self.reward_service = RewardService(store)
        self.wallet_service = WalletService(store)

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/start [referral code]"""
        user = update.effective_user
        args = self.args(context)
        try:
            registration = await self.user_service.register(
                account_id=self.account_id(update),
                display_name=user.full_name,
                username=user.username,
                referral_code=args[0] if args else None
            )
            await self.user_service.record_login(self.account_id(update))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            self.messages.welcome(registration.account, registration.created, registration.referred),
            reply_markup=self.keyboards.main_menu()
        )

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.message.reply_text(HELP_TEXT)

    async def main_menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.callback_query.answer()
        await update.callback_query.edit_message_text(
            "🏠 Main menu", reply_markup=self.keyboards.main_menu()
        )

    async def show_claims(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Reward buttons with their countdowns"""
        query = update.callback_query
        if query:
            await query.answer()
        try:
            account = await self.current_account(update)
            status = await self.reward_service.status(account.account_id)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await self.respond(
            update,
            f"🎁 Rewards\n\n🔥 Daily streak: {account.daily_streak} day(s)",
            reply_markup=self.keyboards.claim_menu(status)
        )

    async def claim(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """claim_<reward type> callback"""
        query = update.callback_query
        reward_type = RewardType(query.data.split('_', 1)[1])
        try:
            result = await self.reward_service.claim(self.account_id(update), reward_type)
            status = await self.reward_service.status(self.account_id(update))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await query.answer(f"+{result.amount_awarded} coins")
        text = f"🎉 You received {result.amount_awarded:,} coins!\n🪙 Balance: {result.coins:,} coins"
        if result.new_streak is not None:
            text += f"\n🔥 Daily streak: {result.new_streak} day(s)"
        await query.edit_message_text(text, reply_markup=self.keyboards.claim_menu(status))

    async def play(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Dart mini-game: each pip is worth GAME_POINTS_PER_PIP points"""
        try:
            account = await self.current_account(update)
            status = (await self.reward_service.status(account.account_id))[RewardType.GAME]
            if not status.can_claim:
                raise IneligibleError(
                    f"Next game in {format_duration(status.ms_remaining)}.",
                    ms_remaining=status.ms_remaining,
                )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        message = await update.message.reply_dice(emoji="🎯")
        points = message.dice.value * Config.GAME_POINTS_PER_PIP
        try:
            result = await self.reward_service.play(account.account_id, points)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            f"🎯 You scored {points} points!\n"
            f"🪙 +{result.coins_awarded} coins (balance {result.coins:,})\n"
            f"➡️ {result.points_carried} points carried to your next game"
        )

    async def balance(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        if query:
            await query.answer()
        try:
            account = await self.current_account(update)
            balance = await self.wallet_service.get_balance(account)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await self.respond(
            update,
            self.messages.format_balance(account, balance),
            reply_markup=self.keyboards.wallet_menu()
        )

    async def history(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        if query:
            await query.answer()
        entries = await self.wallet_service.history(self.account_id(update))
        await self.respond(
            update,
            self.messages.format_history(entries),
            reply_markup=self.keyboards.wallet_menu()
        )

    async def convert(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/convert <coins>"""
        args = self.args(context)
        try:
            if len(args) != 1 or not args[0].isdigit():
                raise ValidationError("Usage: /convert <coins>")
            result = await self.wallet_service.convert(self.account_id(update), int(args[0]))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(
            f"💱 Converted {result.coins:,} coins into {result.pkr_amount} PKR.\n"
            f"🪙 Coins left: {result.coins_left:,}\n"
            f"💰 PKR balance: {result.pkr_balance}"
        )

    async def referral(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        try:
            account = await self.current_account(update)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        bot_username = context.bot.username
        await update.message.reply_text(
            f"🤝 Your referral code: {account.referral_code}\n\n"
            f"Friends who join with https://t.me/{bot_username}?start={account.referral_code} "
            f"earn you {Config.REFERRAL_BONUS:,} coins."
        )

    async def set_payment(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/setpayment <jazzcash|easypaisa> <number> [account name]"""
        args = self.args(context)
        try:
            if len(args) < 2 or args[0].lower() not in PAYMENT_FIELDS:
                raise ValidationError("Usage: /setpayment <jazzcash|easypaisa> <number> [account name]")
            fields = {PAYMENT_FIELDS[args[0].lower()]: args[1]}
            if len(args) > 2:
                fields["account_name"] = " ".join(args[2:])
            await self.current_account(update)
            await self.user_service.update_profile(self.account_id(update), **fields)
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text("✅ Payment details saved.")

    async def set_game(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/setgame <pubg|freefire> <id>"""
        args = self.args(context)
        try:
            if len(args) != 2 or args[0].lower() not in GAME_FIELDS:
                raise ValidationError("Usage: /setgame <pubg|freefire> <id>")
            await self.current_account(update)
            await self.user_service.update_profile(
                self.account_id(update), **{GAME_FIELDS[args[0].lower()]: args[1]}
            )
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text("✅ Game ID saved.")

    async def reconcile(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        try:
            reports = await self.wallet_service.reconcile(self.account_id(update))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text(self.messages.format_reconciliation(reports))

    async def logout(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        try:
            await self.user_service.logout(self.account_id(update))
        except LedgerError as e:
            await self.reply_error(update, e)
            return

        await update.message.reply_text("👋 You are logged out. Send /start to come back.")
