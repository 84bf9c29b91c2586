"""
Kitchen Roster Assistant - Telegram Bot.

Telegram is the only user interface. Chefs upload the monthly duty roster
as a spreadsheet and then ask questions about it in plain language
("who is off tomorrow?", "what about bakery?"). Everything is answered
locally from the stored roster.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.core.conversation import ConversationSession

if TYPE_CHECKING:
    from src.core.roster_parser import ParseResult
    from src.ports.roster_store_port import RosterStorePort

logger = logging.getLogger(__name__)

SESSION_KEY = "session"


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers: the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def _get_session(context: ContextTypes.DEFAULT_TYPE) -> ConversationSession:
    """This chat's conversation session, created on first use."""
    session = context.chat_data.get(SESSION_KEY)
    if session is None:
        session = ConversationSession(max_turns=settings.HISTORY_LIMIT)
        context.chat_data[SESSION_KEY] = session
    return session


def format_upload_summary(filename: str, month: str | None, result: ParseResult, replaced: int, saved: bool) -> str:
    """Build the reply sent after a roster upload."""
    if not result.success:
        return f"❌ I couldn't read {filename}.\n\n{result.error}"

    meta = result.metadata
    lines = [
        f"✅ Roster loaded from {filename}",
        "",
        f"👥 Staff: {meta.unique_staff}",
        f"📋 Schedule entries: {meta.total_records}",
        f"📐 Format: {meta.format}",
    ]
    if month:
        lines.append(f"📅 Month: {month}")
    if meta.sections:
        lines.append(f"🏢 Sections: {', '.join(meta.sections)}")
    if meta.skipped_rows:
        lines.append(f"⏭️ Skipped rows: {meta.skipped_rows}")
    if replaced:
        lines.append(f"\n♻️ Replaced {replaced} earlier roster(s) for {month}.")
    if not saved:
        lines.append("\n⚠️ The roster could not be saved, so it won't survive a restart.")
    lines.append("\nAsk me something like \"who is working today?\"")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start - welcome message."""
    await update.message.reply_text(
        "Welcome to *Kitchen Roster Assistant*!\n\n"
        "I answer questions about your kitchen duty roster:\n"
        "• Send me the roster as an .xlsx or .csv file\n"
        "• Then ask: \"Who is working today?\", \"Who is off tomorrow?\"\n"
        "• Follow up with \"what about bakery?\" or \"friday?\"\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help - list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/roster - Team overview of the loaded roster\n"
        "/reset - Forget this conversation\n"
        "/help - Show this message\n\n"
        "Upload a roster file at any time to replace the roster for its month.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_roster(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /roster - staff counts per role category."""
    from src.core.role_categorizer import category_summary
    from src.core.roster_service import load_roster

    store: RosterStorePort = context.bot_data["store"]
    employees = load_roster(store)
    if not employees:
        await update.message.reply_text(
            "No roster loaded yet. Send me a duty roster file to get started."
        )
        return

    lines = [f"👥 Team overview ({len(employees)} staff)", ""]
    for name, count, icon, _color in category_summary(employees):
        lines.append(f"{icon} {name}: {count}")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset - clear this chat's conversation memory."""
    _get_session(context).reset()
    await update.message.reply_text("🧹 Conversation cleared. Ask me anything about the roster.")


# ---------------------------------------------------------------------------
# Message handlers
# ---------------------------------------------------------------------------


@authorized_only
async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle an uploaded roster file - read, parse and store it."""
    from src.adapters.grid_reader import GridReadError, SUPPORTED_EXTENSIONS, is_supported, read_grid
    from src.core.roster_service import ingest_grid

    store: RosterStorePort = context.bot_data["store"]
    document = update.message.document
    filename = document.file_name or "roster"

    if not is_supported(filename):
        await update.message.reply_text(
            f"Please send the roster as one of: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
        return

    tmp_path: str | None = None
    try:
        tg_file = await context.bot.get_file(document.file_id)
        with tempfile.NamedTemporaryFile(suffix=Path(filename).suffix, delete=False) as tmp:
            tmp_path = tmp.name
        await tg_file.download_to_drive(tmp_path)

        grid = read_grid(tmp_path, display_name=filename)
        ingest = ingest_grid(
            grid,
            filename,
            store,
            today=_now().date(),
            header_lookahead=settings.HEADER_LOOKAHEAD,
        )
        logger.info(
            "Roster upload %s: success=%s month=%s saved=%s",
            filename, ingest.parse.success, ingest.month, ingest.saved,
        )
        await update.message.reply_text(
            format_upload_summary(
                filename, ingest.month, ingest.parse, len(ingest.replaced), ingest.saved,
            )
        )

    except GridReadError as exc:
        await update.message.reply_text(f"❌ {exc}")
    except Exception as exc:
        logger.error("Document handling error: %s", exc)
        await update.message.reply_text(
            "Sorry, I couldn't process that file. Please try again."
        )
    finally:
        if tmp_path:
            try:
                Path(tmp_path).unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("Could not remove temp file %s: %s", tmp_path, exc)


@authorized_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text messages - answer a question about the roster."""
    from src.core.duty_query import answer
    from src.core.roster_service import load_roster

    store: RosterStorePort = context.bot_data["store"]
    employees = load_roster(store)
    reply, session = answer(
        update.message.text,
        employees,
        session=_get_session(context),
        now=_now(),
        display_limit=settings.DISPLAY_LIMIT,
    )
    context.chat_data[SESSION_KEY] = session
    await update.message.reply_text(reply)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(store: RosterStorePort | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Roster store implementation. Defaults to RosterDB.
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if store is None:
        from src.data.db import RosterDB
        store = RosterDB()

    # Store ports in bot_data for handler access
    app.bot_data["store"] = store

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("roster", cmd_roster))
    app.add_handler(CommandHandler("reset", cmd_reset))

    # Roster uploads
    app.add_handler(MessageHandler(filters.Document.ALL, handle_document))

    # Text messages (non-command)
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Kitchen Roster Assistant bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
