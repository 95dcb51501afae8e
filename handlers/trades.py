# handlers/trades.py
from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler, CommandHandler, MessageHandler, filters, CallbackQueryHandler
import asyncio
import logging
from errors import JournalError, PersistenceError, RenderError, ValidationError
from models import Emotion, is_iso_date, parse_number
from stats import Period

logger = logging.getLogger(__name__)

# Conversation states
PAIR, DIRECTION, DATE, RISK, RESULT, RESULT_TYPE, EMOTION, NOTES, SCREENSHOTS, CONFIRM = range(10)

PERIOD_LABELS = {
    Period.ALL: "all time",
    Period.DAY: "today",
    Period.WEEK: "this week",
    Period.MONTH: "this month",
    Period.YEAR: "this year",
}


def get_store(context: ContextTypes.DEFAULT_TYPE):
    return context.application.bot_data["store"]


def format_trade_line(r) -> str:
    return f"#{r.id} {r.date} {r.pair} {r.direction.value} result:{r.result_value:.2f} ({r.result_type.value})"


def format_stats(stats, period=Period.ALL) -> str:
    return (
        f"Stats ({PERIOD_LABELS[Period(period)]})\n"
        f"Trades: {stats.total_trades}\n"
        f"Win rate: {stats.win_rate:.2f}%\n"
        f"Profit/Loss: ${stats.total_profit:.2f}"
    )


def format_profile(p) -> str:
    return (
        f"Name: {p.name}\n"
        f"Email: {p.email or '-'}\n"
        f"Account size: {p.account_size:.2f}\n"
        f"Start date: {p.start_date}"
    )


def parse_period(args) -> Period:
    if not args:
        return Period.ALL
    try:
        return Period(args[0].lower())
    except ValueError:
        raise ValidationError("period", "must be one of: all, day, week, month, year")


async def start_trade(update: Update, context: ContextTypes.DEFAULT_TYPE):
    context.user_data.clear()
    await update.message.reply_text("Let's log a trade. What instrument/pair? (e.g., BTCUSD, EURUSD)")
    return PAIR


async def ask_direction(update: Update, context: ContextTypes.DEFAULT_TYPE):
    context.user_data['pair'] = update.message.text.strip().upper()
    keyboard = [
        [InlineKeyboardButton("Long", callback_data="long"), InlineKeyboardButton("Short", callback_data="short")]
    ]
    await update.message.reply_text("Direction?", reply_markup=InlineKeyboardMarkup(keyboard))
    return DIRECTION


async def direction_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    context.user_data['direction'] = query.data
    await query.edit_message_text(f"Direction: {query.data}\nTrade date (YYYY-MM-DD) or 'skip' for today:")
    return DATE


async def date_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    txt = update.message.text.strip()
    if txt.lower() != "skip":
        if not is_iso_date(txt):
            await update.message.reply_text("Invalid date. Please send YYYY-MM-DD or 'skip'")
            return DATE
        context.user_data['date'] = txt
    await update.message.reply_text("Amount risked:")
    return RISK


async def risk_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    txt = update.message.text.strip()
    if parse_number(txt) is None:
        await update.message.reply_text("Invalid number. Please send the amount risked")
        return RISK
    context.user_data['risk'] = txt
    await update.message.reply_text("Realized result (profit positive, loss negative):")
    return RESULT


async def result_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    txt = update.message.text.strip()
    if parse_number(txt) is None:
        await update.message.reply_text("Invalid number. Please send the realized result")
        return RESULT
    context.user_data['result'] = txt
    keyboard = [
        [InlineKeyboardButton("Auto", callback_data="auto")],
        [InlineKeyboardButton("Win", callback_data="win"),
         InlineKeyboardButton("Loss", callback_data="loss"),
         InlineKeyboardButton("Breakeven", callback_data="breakeven")],
    ]
    await update.message.reply_text("Result type?", reply_markup=InlineKeyboardMarkup(keyboard))
    return RESULT_TYPE


async def result_type_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    context.user_data['result_type'] = query.data
    keyboard = [[InlineKeyboardButton(e.value.capitalize(), callback_data=e.value)] for e in Emotion]
    await query.edit_message_text(f"Result type: {query.data}\nHow did you feel?", reply_markup=InlineKeyboardMarkup(keyboard))
    return EMOTION


async def emotion_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    context.user_data['emotion'] = query.data
    await query.edit_message_text(f"Emotion: {query.data}\nOptional notes for this trade (or 'skip'):")
    return NOTES


async def notes_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    txt = update.message.text.strip()
    context.user_data['notes'] = "" if txt.lower() == "skip" else txt
    context.user_data['screenshots'] = []
    await update.message.reply_text("Send screenshots now, then type 'done' (or 'skip'):")
    return SCREENSHOTS


async def screenshot_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    tg_file = await update.message.photo[-1].get_file()
    data = await tg_file.download_as_bytearray()
    context.user_data['screenshots'].append(bytes(data))
    await update.message.reply_text(f"Screenshot {len(context.user_data['screenshots'])} received. More, or 'done'.")
    return SCREENSHOTS


SCREENSHOTS_PROMPT = "Send screenshots as photos, then type 'done' (or 'skip')."


async def screenshots_reprompt(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(SCREENSHOTS_PROMPT)
    return SCREENSHOTS


async def screenshots_done(update: Update, context: ContextTypes.DEFAULT_TYPE):
    d = context.user_data
    summary = (
        f"Pair: {d.get('pair')}\n"
        f"Direction: {d.get('direction')}\n"
        f"Date: {d.get('date', 'today')}\n"
        f"Risk: {d.get('risk')}\n"
        f"Result: {d.get('result')} ({d.get('result_type')})\n"
        f"Emotion: {d.get('emotion')}\n"
        f"Notes: {d.get('notes') or '-'}\n"
        f"Screenshots: {len(d.get('screenshots', []))}\n\n"
        "Confirm save?"
    )
    keyboard = [[InlineKeyboardButton("Save", callback_data="SAVE"), InlineKeyboardButton("Cancel", callback_data="CANCEL")]]
    await update.message.reply_text(summary, reply_markup=InlineKeyboardMarkup(keyboard))
    return CONFIRM


async def confirm_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    if query.data == "SAVE":
        payload = dict(context.user_data)
        store = get_store(context)
        try:
            record = await asyncio.to_thread(store.add_trade, payload)
            await query.edit_message_text(f"Trade saved ✅ (id: {record.id}, {record.result_type.value})")
        except PersistenceError as e:
            await query.edit_message_text(f"Trade kept for this session but not saved to disk: {e}")
        except (ValidationError, RenderError) as e:
            logger.info(f"Trade rejected: {e}")
            await query.edit_message_text(f"Failed to save trade: {e}")
    else:
        await query.edit_message_text("Cancelled.")
    context.user_data.clear()
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text("Trade logging cancelled.")
    context.user_data.clear()
    return ConversationHandler.END


# list recent trades, newest first
async def list_trades(update: Update, context: ContextTypes.DEFAULT_TYPE):
    rows = get_store(context).recent(10)
    if not rows:
        await update.message.reply_text("No trades yet. Use /log to add your first trade.")
        return
    await update.message.reply_text("\n".join(format_trade_line(r) for r in rows))


# /delete <id>
async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args or not context.args[0].lstrip("#").isdigit():
        await update.message.reply_text("Usage: /delete <trade id>")
        return
    trade_id = int(context.args[0].lstrip("#"))
    try:
        removed = await asyncio.to_thread(get_store(context).delete_trade, trade_id)
    except PersistenceError as e:
        await update.message.reply_text(f"Deleted for this session but not saved to disk: {e}")
        return
    await update.message.reply_text(f"Trade #{trade_id} deleted." if removed else f"No trade #{trade_id}.")


# /stats [all|day|week|month|year]
async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    try:
        period = parse_period(context.args)
    except ValidationError as e:
        await update.message.reply_text(str(e))
        return
    stats = get_store(context).compute_stats(period)
    await update.message.reply_text(format_stats(stats, period))


# /profile or /profile <field> <value>
async def profile_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    store = get_store(context)
    if not context.args:
        await update.message.reply_text(format_profile(store.profile))
        return
    if len(context.args) < 2:
        await update.message.reply_text("Usage: /profile <name|email|account_size|start_date> <value>")
        return
    field, value = context.args[0].lower(), " ".join(context.args[1:])
    try:
        profile = await asyncio.to_thread(store.update_profile, {field: value})
    except JournalError as e:
        await update.message.reply_text(f"Profile not updated: {e}")
        return
    await update.message.reply_text(format_profile(profile))


async def clear_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    keyboard = [[InlineKeyboardButton("Delete all", callback_data="CLEAR_YES"), InlineKeyboardButton("Keep", callback_data="CLEAR_NO")]]
    await update.message.reply_text(
        "Really delete ALL trades? This cannot be undone.",
        reply_markup=InlineKeyboardMarkup(keyboard)
    )


async def clear_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    if query.data != "CLEAR_YES":
        await query.edit_message_text("Nothing deleted.")
        return
    try:
        count = await asyncio.to_thread(get_store(context).clear_trades)
    except PersistenceError as e:
        await query.edit_message_text(f"Cleared for this session but not saved to disk: {e}")
        return
    await query.edit_message_text(f"Deleted {count} trades.")


# Conversation handler factory
def get_trade_conversation():
    text = filters.TEXT & ~filters.COMMAND
    conv = ConversationHandler(
        entry_points=[CommandHandler("log", start_trade)],
        states={
            PAIR: [MessageHandler(text, ask_direction)],
            DIRECTION: [CallbackQueryHandler(direction_cb, pattern="^(long|short)$")],
            DATE: [MessageHandler(text, date_handler)],
            RISK: [MessageHandler(text, risk_handler)],
            RESULT: [MessageHandler(text, result_handler)],
            RESULT_TYPE: [CallbackQueryHandler(result_type_cb, pattern="^(auto|win|loss|breakeven)$")],
            EMOTION: [CallbackQueryHandler(emotion_cb, pattern="^(" + "|".join(e.value for e in Emotion) + ")$")],
            NOTES: [MessageHandler(text, notes_handler)],
            SCREENSHOTS: [
                MessageHandler(filters.PHOTO, screenshot_handler),
                MessageHandler(filters.Regex("(?i)^(done|skip)$"), screenshots_done),
                MessageHandler(text, screenshots_reprompt),
            ],
            CONFIRM: [CallbackQueryHandler(confirm_cb, pattern="^(SAVE|CANCEL)$")],
        },
        fallbacks=[CommandHandler("cancel", cancel)],
        conversation_timeout=300
    )
    return conv


def get_command_handlers():
    return [
        CommandHandler("list", list_trades),
        CommandHandler("delete", delete_command),
        CommandHandler("stats", stats_command),
        CommandHandler("profile", profile_command),
        CommandHandler("clear", clear_command),
        CallbackQueryHandler(clear_cb, pattern="^CLEAR_"),
    ]
