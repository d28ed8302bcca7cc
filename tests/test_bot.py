"""
Tests for bot.py — Telegram search flow with a mocked assistant and bot API.

Covers:
  - run_search(): loading message edited into the result card + source buttons
  - run_search(): assistant errors become an error panel with a retry button
  - run_search(): a stale reply is dropped when a newer search started
  - handle_callback(): reset → welcome, popular → search
  - run_search(): a card Telegram rejects falls back to the error panel
  - handle_text(): blank text
"""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram.error import BadRequest

import bot
from errors import QuotaExceededError
from models import AnalysisResult, SourceCitation
from providers.manager import QUOTA_MESSAGE

CHAT_ID = 42


@pytest.fixture(autouse=True)
def reset_bot_state():
    bot._generations.clear()
    yield
    bot._generations.clear()


def make_context():
    msg = MagicMock()
    msg.edit_text = AsyncMock()
    msg.delete = AsyncMock()
    context = MagicMock()
    context.bot.send_message = AsyncMock(return_value=msg)
    return context, msg


def make_assistant(result=None, error=None):
    assistant = MagicMock()
    assistant.search = AsyncMock(return_value=result, side_effect=error)
    return assistant


def make_update(text: str = "", data: str = None):
    update = MagicMock()
    update.effective_user.id = 7
    update.effective_chat.id = CHAT_ID
    update.effective_chat.send_message = AsyncMock()
    update.message.text = text
    update.message.reply_text = AsyncMock()
    update.callback_query.data = data
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    return update


@pytest.mark.asyncio
class TestRunSearch:
    async def test_success_renders_report_with_source_buttons(self, sample_answer):
        result = AnalysisResult(
            raw_text=sample_answer,
            sources=(SourceCitation("https://ptt.cc/a", "PTT 心得"), SourceCitation("https://reddit.com/b", "Reddit")),
            model_id="gemini-x",
        )
        context, msg = make_context()
        with patch.object(bot, "get_assistant", return_value=make_assistant(result)):
            await bot.run_search(CHAT_ID, context, "Sony XM5")

        context.bot.send_message.assert_awaited_once()
        text = msg.edit_text.await_args.args[0]
        assert "旗艦級無線降噪耳機" in text
        keyboard = msg.edit_text.await_args.kwargs["reply_markup"]
        urls = [row[0].url for row in keyboard.inline_keyboard]
        assert urls == ["https://ptt.cc/a", "https://reddit.com/b"]

    async def test_assistant_error_shows_panel_with_retry(self):
        context, msg = make_context()
        with patch.object(bot, "get_assistant", return_value=make_assistant(error=QuotaExceededError(QUOTA_MESSAGE))):
            await bot.run_search(CHAT_ID, context, "Sony XM5")

        text = msg.edit_text.await_args.args[0]
        assert "配額已額滿" in text
        keyboard = msg.edit_text.await_args.kwargs["reply_markup"]
        assert keyboard.inline_keyboard[0][0].callback_data == bot.CB_RESET

    async def test_unexpected_error_shows_generic_panel(self):
        context, msg = make_context()
        with patch.object(bot, "get_assistant", return_value=make_assistant(error=RuntimeError("boom"))):
            await bot.run_search(CHAT_ID, context, "Sony XM5")

        assert "發生未預期的錯誤" in msg.edit_text.await_args.args[0]

    async def test_stale_reply_dropped(self):
        release = asyncio.Event()

        async def slow_search(query, image=None):
            await release.wait()
            return AnalysisResult(raw_text="# 產品概覽\nold")

        assistant = MagicMock()
        assistant.search = slow_search
        context, msg = make_context()

        with patch.object(bot, "get_assistant", return_value=assistant):
            task = asyncio.create_task(bot.run_search(CHAT_ID, context, "old query"))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            assert CHAT_ID in bot._generations
            bot._next_generation(CHAT_ID)     # a newer search starts
            release.set()
            await task

        msg.edit_text.assert_not_awaited()
        msg.delete.assert_awaited_once()

    async def test_image_passed_to_assistant(self):
        assistant = make_assistant(AnalysisResult(raw_text=""))
        context, _ = make_context()
        with patch.object(bot, "get_assistant", return_value=assistant):
            await bot.run_search(CHAT_ID, context, "", b"\xff\xd8")
        assistant.search.assert_awaited_once_with("", b"\xff\xd8")

    async def test_rejected_card_falls_back_to_error_panel(self):
        context, msg = make_context()
        msg.edit_text = AsyncMock(side_effect=[BadRequest("Can't parse entities"), None])
        report_text = "# 專家點評\n" + "a" * 3700 + "." * 400
        with patch.object(bot, "get_assistant", return_value=make_assistant(AnalysisResult(raw_text=report_text))):
            await bot.run_search(CHAT_ID, context, "Sony XM5")

        assert msg.edit_text.await_count == 2
        fallback = msg.edit_text.await_args_list[1]
        assert "發生未預期的錯誤" in fallback.args[0]
        assert fallback.kwargs["reply_markup"].inline_keyboard[0][0].callback_data == bot.CB_RESET

    async def test_finished_search_leaves_no_generation_entry(self):
        context, _ = make_context()
        with patch.object(bot, "get_assistant", return_value=make_assistant(AnalysisResult(raw_text=""))):
            await bot.run_search(CHAT_ID, context, "a")
        with patch.object(bot, "get_assistant", return_value=make_assistant(error=RuntimeError("boom"))):
            await bot.run_search(CHAT_ID + 1, context, "b")
        assert bot._generations == {}


@pytest.mark.asyncio
class TestHandlers:
    async def test_reset_callback_shows_welcome(self):
        update = make_update(data=bot.CB_RESET)
        await bot.handle_callback(update, MagicMock())
        text = update.callback_query.edit_message_text.await_args.args[0]
        assert "智選購物 AI" in text

    async def test_reset_callback_invalidates_search_in_flight(self):
        generation = bot._next_generation(CHAT_ID)
        await bot.handle_callback(make_update(data=bot.CB_RESET), MagicMock())
        assert not bot._is_current(CHAT_ID, generation)
        assert CHAT_ID not in bot._generations

    async def test_popular_callback_runs_search(self):
        update = make_update(data=f"{bot.CB_POPULAR}PS5 Slim")
        with patch.object(bot, "run_search", AsyncMock()) as run:
            await bot.handle_callback(update, MagicMock())
        assert run.await_args.args[2] == "PS5 Slim"

    async def test_text_message_runs_search(self):
        update = make_update(text="  Sony XM5 ")
        with patch.object(bot, "run_search", AsyncMock()) as run:
            await bot.handle_text(update, MagicMock())
        assert run.await_args.args[0] == CHAT_ID
        assert run.await_args.args[2] == "Sony XM5"

    async def test_blank_text_not_searched(self):
        update = make_update(text="   ")
        with patch.object(bot, "run_search", AsyncMock()) as run:
            await bot.handle_text(update, MagicMock())
        run.assert_not_awaited()
        update.message.reply_text.assert_awaited_once()


def test_sources_keyboard_skips_non_http_links():
    report = SimpleNamespace(sources=[SourceCitation("", "No link"), SourceCitation("https://a", "A")])
    keyboard = bot.sources_keyboard(report)
    assert [row[0].url for row in keyboard.inline_keyboard] == ["https://a"]


def test_sources_keyboard_none_without_links():
    assert bot.sources_keyboard(SimpleNamespace(sources=[])) is None
