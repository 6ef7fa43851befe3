import logging

from telegram import Update
from telegram.ext import (
    ApplicationBuilder,
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)
from config import Settings, get_settings
from models import PipelineError, Valuation
from pipeline import ValuationPipeline, build_pipeline

logger = logging.getLogger(__name__)


def format_valuation(valuation: Valuation, settings: Settings) -> str:
    lines = [
        f"🪙 Your {settings.token_symbol} Balance",
        f"💰 {valuation.balance_display}",
    ]
    if valuation.usd_display:
        if valuation.usd_display.startswith("$"):
            lines.append(f"💵 (~{valuation.usd_display} USD)")
        else:
            lines.append(f"💵 ({valuation.usd_display})")
    if valuation.identity is not None and valuation.identity.kind == "social_id":
        lines.append(f"🆔 FID: {valuation.identity.value}")
    lines.append(f"📬 Address: `{valuation.address}`")
    lines.append(f"🔗 Network: {settings.chain_name} (Chain ID: {settings.chain_id})")
    if valuation.price is not None:
        lines.append(f"📈 Price: ${valuation.price.usd:.8f} USD")
    lines.append(f"🔎 {settings.explorer_url}")
    return "\n".join(lines)


def format_error(error: PipelineError) -> str:
    lines = ["❌ Error", error.user_message]
    if error.stage == "resolution":
        lines.append(
            "Please ensure you have a connected Ethereum or Polygon address "
            "linked to your Farcaster account."
        )
    return "\n".join(lines)


class GoldiesBot:
    def __init__(self, settings: Settings | None = None, pipeline: ValuationPipeline | None = None):
        self.settings = settings or get_settings()
        self.pipeline = pipeline or build_pipeline(self.settings)
        self.app: Application = ApplicationBuilder().token(self.settings.bot_token).build()

        self.app.add_handler(CommandHandler("start", self.start))
        self.app.add_handler(CommandHandler("check", self.check))
        self.app.add_handler(CommandHandler("fid", self.check_fid))
        self.app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self.unknown_input)
        )

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        symbol = self.settings.token_symbol
        await update.message.reply_text(
            f"👋 Welcome to the {symbol} Balance Checker!\n"
            f"Use /check <ETH_ADDRESS or name.eth> to check a wallet.\n"
            f"Use /fid <FARCASTER_ID> to check the wallet linked to a Farcaster account."
        )

    async def check(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if len(context.args) != 1:
            await update.message.reply_text("❗ Usage: /check <wallet_address or name.eth>")
            return
        await self.reply(update, await self.pipeline.run_inputs(text=context.args[0]))

    async def check_fid(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if len(context.args) != 1:
            await update.message.reply_text("❗ Usage: /fid <farcaster_id>")
            return
        await self.reply(update, await self.pipeline.run_inputs(social_id=context.args[0]))

    async def reply(self, update: Update, result: Valuation | PipelineError):
        if isinstance(result, PipelineError):
            await update.message.reply_text(format_error(result))
        else:
            await update.message.reply_text(format_valuation(result, self.settings), parse_mode="Markdown")

    async def unknown_input(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.message.reply_text(
            "🤖 I didn't understand that. Try one of these:\n"
            "/check <wallet or name.eth>\n/fid <farcaster_id>"
        )

    async def run(self):
        """Start long polling and block until the bot is stopped.

        ``Application.run_polling`` is synchronous and drives the event loop
        itself. It is called from inside ``asyncio.run`` (see main.py), which
        only works because ``nest_asyncio.apply()`` allows the nested loop.
        """
        logger.info("✅ Bot is running...")
        self.app.run_polling()
