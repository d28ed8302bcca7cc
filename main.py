"""
main.py — Single entry point.

Runs the browser UI and the Telegram bot in the same asyncio event loop:
no threads, no subprocesses.

Architecture:
  asyncio event loop
    ├── aiohttp web server   (search page + results)
    │    Only started when WEB_ENABLED=true (default).
    └── python-telegram-bot  (polling)
         Only started when TELEGRAM_BOT_TOKEN is set.
"""
import asyncio
import logging
import signal
import sys
from pathlib import Path

import config

# Log file lives in DATA_DIR so a single Docker volume mount captures it.
_data_dir = Path(config.DATA_DIR)
_data_dir.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(_data_dir / "assistant.log"), encoding="utf-8"),
    ],
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def run() -> None:
    if not config.WEB_ENABLED and not config.TELEGRAM_BOT_TOKEN:
        logger.critical("Nothing to run: set WEB_ENABLED=true and/or TELEGRAM_BOT_TOKEN.")
        raise SystemExit(1)

    # Surface a missing key at startup; searches will still report it to users.
    from providers.manager import get_assistant
    if not get_assistant().settings.api_key:
        logger.warning("No Gemini API key configured — every search will fail until one is set.")

    # ── Start web UI ───────────────────────────────────────────────────────────
    web_runner = None
    if config.WEB_ENABLED:
        from web_server import start_web_server
        web_runner = await start_web_server()

    stop_event = asyncio.Event()

    def _stop(*_):
        logger.info("Shutdown signal received.")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except (NotImplementedError, RuntimeError):
            # Windows doesn't support add_signal_handler for all signals
            pass

    # ── Run PTB in async context (PTB v20 pattern for custom event loops) ──────
    ptb_app = None
    if config.TELEGRAM_BOT_TOKEN:
        from bot import build_application
        ptb_app = build_application()
        await ptb_app.initialize()
        await ptb_app.start()
        await ptb_app.updater.start_polling(
            allowed_updates=["message", "callback_query"],
            drop_pending_updates=True,
        )
        logger.info("✅ Telegram bot is running.")

    logger.info("Press Ctrl+C to stop.")

    # Block until signal received
    try:
        await stop_event.wait()
    except (KeyboardInterrupt, SystemExit):
        pass

    # Graceful shutdown
    logger.info("Shutting down…")
    if ptb_app:
        await ptb_app.updater.stop()
        await ptb_app.stop()
        await ptb_app.shutdown()

    if web_runner:
        await web_runner.cleanup()
        logger.info("Web server stopped.")

    logger.info("Goodbye.")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
