"""
bot.py — Telegram bot handlers.

All visual formatting is delegated to style.py.
Search state is kept in-memory per chat_id and only lives for one request.
"""
from __future__ import annotations

import itertools
import logging
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

import config
import style
from errors import AssistantError
from price_history import generate_price_history
from providers.manager import get_assistant
from report import build_report

logger = logging.getLogger(__name__)

# ── Callback data ──────────────────────────────────────────────────────────────
CB_RESET   = "reset"
CB_POPULAR = "popular:"         # + search term

# Telegram allows at most this many URL buttons to stay readable
MAX_SOURCE_BUTTONS = 5


# ── Request generation guard ───────────────────────────────────────────────────
# Every search bumps the chat's generation; a reply that resolves after a newer
# search started is dropped instead of overwriting the newer one.
# Only chats with a search in flight have an entry.
_generation_counter = itertools.count(1)
_generations: dict[int, int] = {}


def _next_generation(chat_id: int) -> int:
    _generations[chat_id] = next(_generation_counter)
    return _generations[chat_id]


def _is_current(chat_id: int, generation: int) -> bool:
    return _generations.get(chat_id) == generation


def _forget(chat_id: int) -> None:
    _generations.pop(chat_id, None)


# ── Keyboards ──────────────────────────────────────────────────────────────────

def popular_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(f"🔥  {term}", callback_data=f"{CB_POPULAR}{term}")]
        for term in config.POPULAR_SEARCHES
    ])


def retry_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🔄  再試一次", callback_data=CB_RESET)],
    ])


def sources_keyboard(report) -> Optional[InlineKeyboardMarkup]:
    rows = [
        [InlineKeyboardButton(f"🔗  {i}. {source.title[:40]}", url=source.uri)]
        for i, source in enumerate(report.sources, 1)
        if source.uri.startswith(("http://", "https://"))
    ][:MAX_SOURCE_BUTTONS]
    return InlineKeyboardMarkup(rows) if rows else None


# ── Search flow ────────────────────────────────────────────────────────────────

async def run_search(
    chat_id: int,
    context: ContextTypes.DEFAULT_TYPE,
    query: str,
    image_bytes: Optional[bytes] = None,
) -> None:
    """Send a loading message, run the analysis, then edit it into the result or an error panel."""
    generation = _next_generation(chat_id)

    msg = await context.bot.send_message(
        chat_id=chat_id,
        text=style.loading_analysis(query, has_image=image_bytes is not None),
        parse_mode="MarkdownV2",
    )

    try:
        result = await get_assistant().search(query, image_bytes)
    except AssistantError as exc:
        logger.warning("Search failed for chat %s: %s", chat_id, exc.message)
        text, keyboard = style.error_panel(exc.message), retry_keyboard()
    except Exception as exc:
        logger.error("Unexpected search failure for chat %s: %s", chat_id, exc, exc_info=True)
        text, keyboard = style.error_unexpected(), retry_keyboard()
    else:
        report = build_report(result)
        text = style.report_card(
            report,
            query,
            price_points=generate_price_history(),
            show_model_info=config.SHOW_MODEL_INFO,
        )
        keyboard = sources_keyboard(report)

    if not _is_current(chat_id, generation):
        logger.info("Dropping stale reply for chat %s (generation %d)", chat_id, generation)
        await msg.delete()
        return
    _forget(chat_id)

    try:
        await msg.edit_text(
            text,
            parse_mode="MarkdownV2",
            reply_markup=keyboard,
            disable_web_page_preview=True,
        )
    except BadRequest as exc:
        logger.error("Telegram rejected the reply for chat %s: %s", chat_id, exc)
        await msg.edit_text(
            style.error_unexpected(),
            parse_mode="MarkdownV2",
            reply_markup=retry_keyboard(),
        )


# ── Handlers ───────────────────────────────────────────────────────────────────

async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        style.welcome(),
        parse_mode="MarkdownV2",
        reply_markup=popular_keyboard(),
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.help_text(), parse_mode="MarkdownV2")


async def cmd_models(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        style.models_info(get_assistant().settings),
        parse_mode="MarkdownV2",
    )


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = (update.message.text or "").strip()
    if not query:
        await update.message.reply_text(style.not_supported(), parse_mode="MarkdownV2")
        return
    await run_search(update.effective_chat.id, context, query)


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    photo       = update.message.photo[-1]
    photo_file  = await context.bot.get_file(photo.file_id)
    image_bytes = bytes(await photo_file.download_as_bytearray())
    query       = (update.message.caption or "").strip()

    await run_search(update.effective_chat.id, context, query, image_bytes)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    data = query.data or ""

    # ── Error panel → back to the empty search state ──────────────────────────
    if data == CB_RESET:
        _forget(update.effective_chat.id)
        await query.edit_message_text(
            style.welcome(),
            parse_mode="MarkdownV2",
            reply_markup=popular_keyboard(),
        )
        return

    # ── Popular search button ─────────────────────────────────────────────────
    if data.startswith(CB_POPULAR):
        term = data[len(CB_POPULAR):]
        await run_search(update.effective_chat.id, context, term)
        return


async def handle_unsupported(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.not_supported(), parse_mode="MarkdownV2")


# ── App factory ────────────────────────────────────────────────────────────────

def build_application() -> Application:
    app = (
        Application.builder()
        .token(config.TELEGRAM_BOT_TOKEN)
        .build()
    )

    app.add_handler(CommandHandler("start",  cmd_start))
    app.add_handler(CommandHandler("help",   cmd_help))
    app.add_handler(CommandHandler("models", cmd_models))
    app.add_handler(MessageHandler(filters.PHOTO,                   handle_photo))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(~filters.COMMAND,                handle_unsupported))
    return app
