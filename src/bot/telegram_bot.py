"""
Timer Bot: Telegram Bot.

Telegram is the only user interface. Users schedule named events with
/set_date (either directly or through an inline calendar picker) and later
send /<event_name> to see how much time is left.

Handlers are thin: command parsing lives in src.core.commands, the picker
state machine in src.core.conversation_controller, and business rules in
src.core.event_service.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ApplicationHandlerStop,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.core.callback_data import CALLBACK_PATTERN, parse_callback_data
from src.core.commands import (
    SYSTEM_COMMANDS,
    AwaitName,
    Direct,
    Interactive,
    normalize_command,
    plan_set_date,
)
from src.core.conversation import ConversationStateTracker
from src.core.conversation_controller import (
    STORAGE_ERROR_MESSAGE,
    ConversationController,
    ControllerReply,
    ReplyKind,
)
from src.core.dates import InvalidDateFormat, parse_event_date, time_left
from src.core.event_service import EventService, InvalidEventName, LookupResult
from src.data.models import EventStatus
from src.ports.event_store import DuplicateEventError, EventNotFoundError, EventStoreError

if TYPE_CHECKING:
    from src.core.picker import Keyboard
    from src.ports.event_store import EventStorePort

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands:\n"
    "/set_date - pick a date and time for a new event in a calendar\n"
    "/set_date event_name [description] - same, with the name given upfront\n"
    "/set_date YYYY-MM-DD HH:MM event_name [description] - add an event with a time\n"
    "/set_date YYYY-MM-DD event_name [description] - add an event (time 00:00)\n"
    "/set_date DD.MM.YYYY event_name [description] - add an event (legacy format)\n"
    "/list, /all - list events\n"
    "/active - active events\n"
    "/outdated - past events\n"
    "/cancel - stop creating an event\n"
    "/help - this message\n"
    "/event_name - time left until the event"
)

USAGE_TEXT = (
    "Usage:\n"
    "/set_date YYYY-MM-DD HH:MM event_name [description]\n"
    "/set_date YYYY-MM-DD event_name [description]\n"
    "/set_date DD.MM.YYYY event_name [description]\n"
    "/set_date event_name [description] - choose the date in a calendar"
)

BOT_COMMANDS = [
    BotCommand("set_date", "Add an event"),
    BotCommand("list", "List events"),
    BotCommand("all", "All events"),
    BotCommand("active", "Active events"),
    BotCommand("outdated", "Past events"),
    BotCommand("cancel", "Stop creating an event"),
    BotCommand("help", "Help"),
]


# ---------------------------------------------------------------------------
# Storage failures: report once, never crash the handler
# ---------------------------------------------------------------------------


def reports_storage_errors(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that turns an unexpected EventStoreError into a user-facing message."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            return await func(update, context)
        except EventStoreError as exc:
            logger.error("%s: storage error: %s", func.__name__, exc)
            message = update.effective_message
            if message is not None:
                await message.reply_text(STORAGE_ERROR_MESSAGE)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _events(context: ContextTypes.DEFAULT_TYPE) -> EventService:
    return context.bot_data["events"]


def _conversations(context: ContextTypes.DEFAULT_TYPE) -> ConversationController:
    return context.bot_data["conversations"]


def _to_markup(keyboard: Keyboard | None) -> InlineKeyboardMarkup | None:
    if keyboard is None:
        return None
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(b.text, callback_data=b.data) for b in row] for row in keyboard]
    )


async def _send(message: Message, reply: ControllerReply) -> None:
    await message.reply_text(
        reply.text,
        parse_mode=reply.parse_mode,
        reply_markup=_to_markup(reply.keyboard),
    )


def format_lookup(result: LookupResult, fallback_chat_id: int, now: datetime) -> str:
    """Render the /<event_name> answer."""
    event = result.event
    lines = [f"Event: {event.name}", f"Date: {event.date}"]
    if event.description:
        lines.append(f"Description: {event.description}")
    if result.found_elsewhere:
        if result.found_chat_id == fallback_chat_id:
            lines.append("(found in the shared events chat)")
        else:
            lines.append("(found in another chat)")

    try:
        left = time_left(parse_event_date(event.date), now)
    except InvalidDateFormat:
        logger.error("Stored event '%s' has unparseable date %r", event.name, event.date)
        lines.append("Could not compute the time left.")
        return "\n".join(lines)

    if left is None:
        lines.append("The event has already passed.")
    else:
        lines.append(f"Time left: {left}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start: welcome message."""
    await update.effective_message.reply_text(
        "Hi! I count down to your events.\n\n"
        "• /set_date to add an event (a calendar will pop up)\n"
        "• /event_name to see how much time is left\n\n"
        "Type /help for the full command list."
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help: list available commands."""
    await update.effective_message.reply_text(HELP_TEXT)


async def _reply_event_list(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    status: EventStatus | None,
) -> None:
    message = update.effective_message
    events = _events(context).list_events(update.effective_chat.id, status=status)

    if status is None:
        title, empty = "Events:", "No events."
    elif status == EventStatus.ACTIVE:
        title, empty = "Active events:", "No active events."
    else:
        title, empty = "Past events:", "No past events."

    if not events:
        await message.reply_text(empty)
        return

    lines = [title]
    for ev in events:
        if status is None:
            lines.append(f"- {ev.name}: {ev.date} (command /{ev.name})")
        else:
            lines.append(f"- {ev.name}: {ev.date}")
    await message.reply_text("\n".join(lines))


@reports_storage_errors
async def cmd_list(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /list and /all: events of this chat plus the shared chat."""
    await _reply_event_list(update, context, status=None)


@reports_storage_errors
async def cmd_active(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /active."""
    await _reply_event_list(update, context, status=EventStatus.ACTIVE)


@reports_storage_errors
async def cmd_outdated(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /outdated."""
    await _reply_event_list(update, context, status=EventStatus.OUTDATED)


@reports_storage_errors
async def cmd_set_date(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /set_date: ask for a name, open the picker, or create directly."""
    message = update.effective_message
    chat_id = update.effective_chat.id
    user_id = update.effective_user.id
    plan = plan_set_date(list(context.args or []))

    if isinstance(plan, AwaitName):
        await _send(message, _conversations(context).start_awaiting_name(chat_id, user_id))
        return

    if isinstance(plan, Interactive):
        reply = _conversations(context).start_with_name(
            chat_id, user_id, plan.name, plan.description,
        )
        await _send(message, reply)
        return

    if not isinstance(plan, Direct):
        await message.reply_text(USAGE_TEXT)
        return

    events = _events(context)
    try:
        event = events.create_event(chat_id, plan.name, plan.date_text, plan.description)
    except InvalidDateFormat as exc:
        await message.reply_text(f"❌ {exc}\n\n{USAGE_TEXT}")
        return
    except (InvalidEventName, DuplicateEventError) as exc:
        await message.reply_text(f"❌ {exc}")
        return

    events.link_to_user(chat_id, user_id, event)
    logger.info("Event created directly: %s -> %s (chat_id=%d)", event.name, event.date, chat_id)
    await message.reply_text(
        f"✅ Event '{event.name}' added for {event.date}! Use /{event.name} to see the time left."
    )


async def cmd_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancel: drop the caller's in-flight event creation."""
    reply = _conversations(context).cancel(update.effective_chat.id, update.effective_user.id)
    await _send(update.effective_message, reply)


@reports_storage_errors
async def handle_dynamic_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /<event_name>: report the time left until the event."""
    message = update.effective_message
    command, _ = normalize_command(message.text)
    if not command or command in SYSTEM_COMMANDS:
        return

    events = _events(context)
    chat_id = update.effective_chat.id
    logger.info("Event lookup '%s' (chat_id=%d)", command, chat_id)
    try:
        result = events.lookup_event(chat_id, command)
    except EventNotFoundError:
        await message.reply_text(f"Event '{command}' not found.")
        return

    await message.reply_text(format_lookup(result, events.fallback_chat_id, events.now()))


# ---------------------------------------------------------------------------
# Conversation handlers
# ---------------------------------------------------------------------------


async def intercept_awaiting_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Runs before every other handler: consume the name after a bare /set_date."""
    message = update.effective_message
    if message is None or message.text is None or update.effective_user is None:
        return

    reply = _conversations(context).handle_name_text(
        update.effective_chat.id, update.effective_user.id, message.text,
    )
    if reply is None or reply.kind == ReplyKind.PASSTHROUGH:
        return

    await _send(message, reply)
    raise ApplicationHandlerStop


async def handle_calendar_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a press on any picker button."""
    query = update.callback_query
    try:
        try:
            callback = parse_callback_data(query.data)
        except ValueError as exc:
            logger.warning("Malformed calendar payload %r: %s", query.data, exc)
            return

        reply = _conversations(context).handle_callback(
            update.effective_chat.id, query.from_user.id, callback,
        )
        if reply is None:
            return

        try:
            await query.edit_message_text(
                reply.text,
                parse_mode=reply.parse_mode,
                reply_markup=_to_markup(reply.keyboard),
            )
        except BadRequest as exc:
            if "not modified" not in str(exc).lower():
                raise
            logger.debug("Picker message unchanged: %s", exc)
    finally:
        await query.answer()


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


async def _register_commands(app: Application) -> None:
    """Publish the fixed command list in the Telegram client menu."""
    try:
        await app.bot.set_my_commands(BOT_COMMANDS)
        logger.info("Registered %d bot commands", len(BOT_COMMANDS))
    except TelegramError as exc:
        logger.error("Failed to register bot commands: %s", exc)


def build_app(store: EventStorePort | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Event store implementation. Defaults to the one selected by
               STORAGE_BACKEND. It is pinged first; EventStoreError propagates.
    """
    if store is None:
        from src.adapters.store_factory import create_event_store
        store = create_event_store()
    store.ping()

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .concurrent_updates(True)
        .post_init(_register_commands)
        .build()
    )

    events = EventService(store, fallback_chat_id=settings.TEST_CHAT_ID)
    tracker = ConversationStateTracker(ttl_seconds=settings.CONVERSATION_TTL_MINUTES * 60)
    app.bot_data["events"] = events
    app.bot_data["conversations"] = ConversationController(tracker, events)

    # A pending "send me the name" prompt sees every text message first
    app.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT, intercept_awaiting_name),
        group=-1,
    )

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler(["list", "all"], cmd_list))
    app.add_handler(CommandHandler("active", cmd_active))
    app.add_handler(CommandHandler("outdated", cmd_outdated))
    app.add_handler(CommandHandler("set_date", cmd_set_date))
    app.add_handler(CommandHandler("cancel", cmd_cancel))
    app.add_handler(CallbackQueryHandler(handle_calendar_callback, pattern=CALLBACK_PATTERN))

    # Anything else starting with "/" is an event name; must stay last
    app.add_handler(MessageHandler(filters.COMMAND, handle_dynamic_command))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Timer Bot...")
    try:
        app = build_app()
    except EventStoreError as exc:
        logger.critical("Event store unavailable, refusing to start: %s", exc)
        sys.exit(1)
    app.run_polling()


if __name__ == "__main__":
    main()
