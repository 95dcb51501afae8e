# bot.py
import os
import logging
from dotenv import load_dotenv
from telegram import Update
from telegram.ext import ApplicationBuilder, CommandHandler, ContextTypes
from handlers.trades import get_trade_conversation, get_command_handlers, get_store, format_stats, format_trade_line
from utils.exporter import export_trades
from apscheduler.schedulers.asyncio import AsyncIOScheduler
import pytz

load_dotenv()
TOKEN = os.getenv("TELEGRAM_TOKEN")
TZ = os.getenv("TIMEZONE", "Africa/Lusaka")
DAILY_HOUR = int(os.getenv("DAILY_SUMMARY_HOUR", "20"))
SUMMARY_CHAT_ID = os.getenv("SUMMARY_CHAT_ID")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

from db import DATABASE_URL, KeyValueStore  # noqa: E402  (reads DATABASE_URL after load_dotenv)
from stats import Period  # noqa: E402
from store import TradeStore  # noqa: E402

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_store() -> TradeStore:
    kv = KeyValueStore(DATABASE_URL)
    kv.init_db()
    store = TradeStore(kv, tz=pytz.timezone(TZ))
    store.load_all()
    return store


async def send_daily_summary(app):
    store = app.bot_data["store"]
    stats = store.compute_stats(Period.DAY)
    lines = [f"Daily summary for {store.profile.name}", format_stats(stats, Period.DAY)]
    lines += [format_trade_line(r) for r in store.recent(3)]
    try:
        await app.bot.send_message(chat_id=SUMMARY_CHAT_ID, text="\n".join(lines))
    except Exception as e:
        logger.warning(f"Failed to send daily summary to {SUMMARY_CHAT_ID}: {e}")


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user = update.effective_user
    path = f"/tmp/trades_{user.id}.csv"
    ok = await export_trades(get_store(context).trades, path)
    if ok:
        with open(path, "rb") as fh:
            await update.message.reply_document(document=fh, filename="trades.csv")
    else:
        await update.message.reply_text("Failed to export.")


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    profile = get_store(context).profile
    await update.message.reply_text(
        f"Welcome, {profile.name}! Use /log to log a trade, /list for recent trades, "
        "/stats [day|week|month|year] for metrics, /delete <id>, /profile, /clear and /export."
    )


def main():
    if not TOKEN:
        raise RuntimeError("TELEGRAM_TOKEN missing in env")

    store = build_store()
    scheduler = AsyncIOScheduler(timezone=pytz.timezone(TZ))

    async def on_startup(app):
        scheduler.start()

    app = ApplicationBuilder().token(TOKEN).post_init(on_startup).build()
    app.bot_data["store"] = store

    # register conversation and commands
    app.add_handler(get_trade_conversation())
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("export", export_command))
    for handler in get_command_handlers():
        app.add_handler(handler)

    # the job is registered before run_polling but the scheduler starts in post_init
    if SUMMARY_CHAT_ID:
        scheduler.add_job(send_daily_summary, 'cron', hour=DAILY_HOUR, args=[app])
    else:
        logger.info("SUMMARY_CHAT_ID not set, daily summary disabled")

    app.run_polling()


if __name__ == "__main__":
    main()
