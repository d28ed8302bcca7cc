"""
style.py — visual style system for the Telegram bot.

Design language:
  • Structured cards with consistent emoji icons
  • Unicode box-drawing dividers
  • Clear visual hierarchy: header → body → footer
  • MarkdownV2 throughout

All text that goes into Telegram messages should be formatted through this module.
"""
from __future__ import annotations

from typing import Optional

import config
from price_history import PricePoint, sparkline
from report import NO_ITEMS, ProductReport

# Telegram rejects messages over 4096 characters
MAX_MESSAGE_CHARS = 4050

# Raw (pre-escape) caps for model-written fields on the report card
MAX_OVERVIEW_CHARS = 900
MAX_VERDICT_CHARS  = 700
MAX_ITEM_CHARS     = 160

# ── Escape ────────────────────────────────────────────────────────────────────

def esc(text: str) -> str:
    """Escape all MarkdownV2 special characters."""
    for ch in r"\_*[]()~`>#+-=|{}.!":
        text = text.replace(ch, f"\\{ch}")
    return text


def clip(text: str, limit: int) -> str:
    """Shorten raw text to at most ``limit`` characters, ending with an ellipsis."""
    return text if len(text) <= limit else text[:limit - 1].rstrip() + "…"


def truncate(text: str) -> str:
    """
    Cut formatted MarkdownV2 to fit in one message.

    Entities on the cards never span lines, so the cut falls on the last line
    break before the limit. A single over-long line is cut without splitting
    an escape sequence.
    """
    if len(text) <= MAX_MESSAGE_CHARS:
        return text
    cut = text[:MAX_MESSAGE_CHARS]
    newline = cut.rfind("\n")
    if newline > 0:
        cut = cut[:newline]
    else:
        trailing = len(cut) - len(cut.rstrip("\\"))
        if trailing % 2:
            cut = cut[:-1]
    return cut + "\n\\.\\.\\."


# ── Visual constants ──────────────────────────────────────────────────────────

DIV   = "━━━━━━━━━━━━━━━━━━━━━━━━━━"    # thick divider
SDIV  = "┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄"    # subtle divider


# ══════════════════════════════════════════════════════════════════════════════
# START / WELCOME
# ══════════════════════════════════════════════════════════════════════════════

def welcome() -> str:
    return (
        f"🛒 *智選購物 AI*\n"
        f"{DIV}\n\n"
        f"即時搜尋最優惠價格 & PTT/Threads 真實評價\\.\n\n"
        f"✨  *我可以幫你*\n"
        f"▸ 輸入產品名稱，例如 _Sony XM5_\n"
        f"▸ 拍張照片，我會先辨識型號\n"
        f"▸ 整理論壇上的優缺點與價格分析\n\n"
        f"{DIV}\n"
        f"_🔥 熱門搜尋：點下方按鈕試試看_"
    )


def help_text() -> str:
    return (
        f"📖 *使用方式*\n"
        f"{DIV}\n\n"
        f"*1️⃣  傳送產品名稱或照片*\n"
        f"_照片可以加上說明文字一起搜尋_\n\n"
        f"*2️⃣  AI 搜尋全網論壇*\n"
        f"_PTT、Dcard、Mobile01、Threads、Reddit_\n\n"
        f"*3️⃣  取得分析報告*\n"
        f"_產品概覽、價格、優缺點、購買建議與參考來源_\n\n"
        f"{DIV}\n"
        f"_指令：/start · /help · /models_"
    )


# ══════════════════════════════════════════════════════════════════════════════
# LOADING
# ══════════════════════════════════════════════════════════════════════════════

def loading_analysis(query: str, has_image: bool) -> str:
    subject = f"🏷️ _{esc(query[:80])}_\n" if query.strip() else ""
    image_line = "📸 正在辨識圖片中的產品…\n" if has_image else ""
    return (
        f"🔍 *正在分析產品資訊*\n"
        f"{SDIV}\n"
        f"{subject}"
        f"{image_line}"
        f"⠋ 正在掃描 PTT, Threads 與各大論壇評價…"
    )


# ══════════════════════════════════════════════════════════════════════════════
# RESULT CARD
# ══════════════════════════════════════════════════════════════════════════════

def _bullets(items: list[str]) -> str:
    if not items:
        return f"  ▸ _{esc(NO_ITEMS)}_"
    return "\n".join(f"  ▸ {esc(clip(item, MAX_ITEM_CHARS))}" for item in items)


def price_trend(points: list[PricePoint]) -> str:
    if not points:
        return ""
    span = f"{points[0].label} → {points[-1].label}"
    latest = f"${points[-1].price}"
    return (
        f"📈 *價格趨勢* _\\(預估近 {len(points) - 1} 個月\\)_\n"
        f"`{sparkline(points)}`  {esc(span)}  {esc(latest)}"
    )


def sources_block(report: ProductReport) -> str:
    if not report.sources:
        return "_無直接來源，基於 AI 一般知識庫分析。_"
    return "\n".join(
        f"{i}\\. {esc(source.title[:90])}"
        for i, source in enumerate(report.sources, 1)
    )


def report_card(
    report: ProductReport,
    query: str,
    price_points: Optional[list[PricePoint]] = None,
    show_model_info: bool = True,
) -> str:
    title = query.strip() or "圖片搜尋結果"
    model_line = (
        f"\n🤖 `{esc(report.model_id)}`  ⚡ `{report.latency_ms}ms`"
        if show_model_info and report.model_id else ""
    )
    trend = f"\n\n{price_trend(price_points)}" if price_points else ""

    text = (
        f"🛍️ *{esc(title[:100])}*\n"
        f"{DIV}\n\n"
        f"{esc(clip(report.overview, MAX_OVERVIEW_CHARS))}\n\n"
        f"💰 *{esc(clip(report.price_headline, MAX_ITEM_CHARS))}*\n\n"
        f"✅ *優點*\n{_bullets(report.top_pros)}\n\n"
        f"❌ *缺點*\n{_bullets(report.top_cons)}\n\n"
        f"{SDIV}\n"
        f"🛒 *購買建議*\n"
        f"{esc(clip(report.verdict, MAX_VERDICT_CHARS))}"
        f"{trend}\n\n"
        f"{SDIV}\n"
        f"ℹ️ *參考來源 \\(PTT/Threads/論壇\\)*\n"
        f"{sources_block(report)}"
        f"{model_line}\n"
        f"{DIV}"
    )
    return truncate(text)


# ══════════════════════════════════════════════════════════════════════════════
# CONFIG INFO
# ══════════════════════════════════════════════════════════════════════════════

def models_info(settings: config.AssistantConfig) -> str:
    lines = [f"🤖 *模型順序*\n{DIV}\n"]
    for i, model in enumerate(settings.model_candidates, 1):
        lines.append(f"{i}\\. `{esc(model)}`")
    lines += [
        f"\n{SDIV}",
        f"🔑 API Key: {esc(config.mask(settings.api_key))}",
    ]
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGES
# ══════════════════════════════════════════════════════════════════════════════

def error_panel(message: str) -> str:
    return (
        f"❌ *糟糕！發生了一些錯誤。*\n"
        f"{DIV}\n\n"
        f"{esc(clip(message, MAX_OVERVIEW_CHARS))}\n\n"
        f"_點下方按鈕重新開始搜尋_"
    )


def error_unexpected() -> str:
    return error_panel("發生未預期的錯誤。")


def not_supported() -> str:
    return (
        f"📸 *傳送產品名稱或照片*\n"
        f"{SDIV}\n"
        f"我需要一段文字或一張產品照片才能搜尋\\.\n"
        f"_例如：Sony XM5, Dyson 吹風機_"
    )
