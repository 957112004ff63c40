import asyncio
from typing import Optional

from fastapi import FastAPI

from deskbot.bootstrap import build_bot
from deskbot.config import settings
from deskbot.logging_config import get_logger, setup_logging
from deskbot.routers import telegram_webhook
from deskbot.services.polling_service import poll_once

setup_logging(settings.log_level)

app = FastAPI(
    title="Deskbot",
    description="Telegram help-desk bot: ticketing, transcription and conversational relay",
    version="0.1.0",
    debug=settings.debug,
)

app.include_router(telegram_webhook.router)

logger = get_logger("main")
polling_logger = get_logger("polling_worker")
_polling_task: Optional[asyncio.Task] = None


def _ensure_bot() -> None:
    if getattr(app.state, "bot", None) is not None:
        return
    if settings.storage_backend == "database":
        from deskbot import models  # noqa: F401
        from deskbot.database import Base, engine

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")
    app.state.bot = build_bot(settings)


async def _polling_loop() -> None:
    offset: Optional[int] = None
    while True:
        try:
            bot = app.state.bot
            offset = await poll_once(bot.telegram, bot.router, offset, settings.polling_timeout_seconds)
        except asyncio.CancelledError:
            break
        except Exception as exc:
            polling_logger.error(
                "Polling worker loop failed",
                extra={"context": {"error": str(exc)}},
            )
            await asyncio.sleep(1)


@app.on_event("startup")
async def start_bot() -> None:
    global _polling_task
    _ensure_bot()
    if not settings.polling_enabled:
        return
    if _polling_task is None or _polling_task.done():
        _polling_task = asyncio.create_task(_polling_loop())
        polling_logger.info("Polling worker started")


@app.on_event("shutdown")
async def stop_polling_worker() -> None:
    global _polling_task
    if _polling_task is None:
        return
    _polling_task.cancel()
    try:
        await _polling_task
    except asyncio.CancelledError:
        pass
    _polling_task = None


@app.get("/health")
async def health():
    return {"status": "ok"}
