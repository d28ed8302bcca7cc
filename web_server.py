"""
web_server.py — browser UI for the shopping assistant.

Runs as an aiohttp web server in the same asyncio event loop as the Telegram bot.

Endpoints:
  GET  /              → search page (text box, image upload, popular searches)
  GET  /search?q=...  → run a text search (used by the popular-search links)
  POST /search        → multipart form: "query" and/or "image"
  GET  /health        → plain-text health check (for uptime monitors / nginx)
"""
from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

import config
import web_pages
from errors import AssistantError
from price_history import generate_price_history
from providers.base import detect_mime_type
from providers.manager import ShoppingAssistant, get_assistant
from report import build_report

logger = logging.getLogger(__name__)

ASSISTANT_KEY = web.AppKey("assistant", ShoppingAssistant)


def _assistant(request: web.Request) -> ShoppingAssistant:
    return request.app.get(ASSISTANT_KEY) or get_assistant()


def _html(text: str, status: int = 200) -> web.Response:
    return web.Response(text=text, status=status, content_type="text/html", charset="utf-8")


async def _render_search(request: web.Request, query: str, image: Optional[bytes]) -> web.Response:
    if not query.strip() and not image:
        raise web.HTTPFound(location="/")

    try:
        result = await _assistant(request).search(query, image)
    except AssistantError as exc:
        logger.warning("Search failed: %s", exc.message)
        return _html(web_pages.error_page(exc.message))
    except Exception as exc:
        logger.error("Unexpected search failure: %s", exc, exc_info=True)
        return _html(web_pages.error_page("發生未預期的錯誤。"), status=500)

    page = web_pages.results_page(
        build_report(result),
        query,
        image=image,
        image_mime=detect_mime_type(image) if image else "image/jpeg",
        price_points=generate_price_history(),
        show_model_info=config.SHOW_MODEL_INFO,
    )
    return _html(page)


# ── Request handlers ───────────────────────────────────────────────────────────

async def handle_index(request: web.Request) -> web.Response:
    return _html(web_pages.index_page())


async def handle_search_get(request: web.Request) -> web.Response:
    return await _render_search(request, request.query.get("q", ""), None)


async def handle_search_post(request: web.Request) -> web.Response:
    try:
        form = await request.post()
    except web.HTTPRequestEntityTooLarge as exc:
        logger.info("Rejected upload: %s", exc.text)
        message = f"圖片太大，請上傳小於 {config.MAX_UPLOAD_MB} MB 的檔案。"
        return _html(web_pages.error_page(message), status=413)

    query = str(form.get("query", "") or "")

    image: Optional[bytes] = None
    upload = form.get("image")
    if isinstance(upload, web.FileField):
        image = upload.file.read() or None

    return await _render_search(request, query, image)


async def handle_health(request: web.Request) -> web.Response:
    """Health check — returns 200 OK. Use with uptime monitors."""
    models = ", ".join(_assistant(request).settings.model_candidates)
    return web.Response(text=f"OK — models: {models}", content_type="text/plain")


# ── App factory ────────────────────────────────────────────────────────────────

def build_web_app(
    assistant: Optional[ShoppingAssistant] = None,
    client_max_size: Optional[int] = None,
) -> web.Application:
    app = web.Application(client_max_size=client_max_size or config.MAX_UPLOAD_MB * 1024 * 1024)
    if assistant is not None:
        app[ASSISTANT_KEY] = assistant
    app.router.add_get("/",        handle_index)
    app.router.add_get("/search",  handle_search_get)
    app.router.add_post("/search", handle_search_post)
    app.router.add_get("/health",  handle_health)
    return app


async def start_web_server() -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app()
    runner = web.AppRunner(app, access_log=logger)
    await runner.setup()
    site = web.TCPSite(runner, config.WEB_HOST, config.WEB_PORT)
    await site.start()
    logger.info("🌐 Web UI listening on http://%s:%d", config.WEB_HOST, config.WEB_PORT)
    return runner
