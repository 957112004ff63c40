import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from deskbot.services.update_router import UpdateRouter

logger = get_logger("telegram_webhook")

router = APIRouter()


def get_update_router(request: Request) -> UpdateRouter:
    return request.app.state.bot.router


async def parse_telegram_update(request: Request) -> Optional[dict]:
    """
    Parse Telegram update with tolerant decoding to avoid utf-8 crashes.
    Returns dict or None.
    """
    try:
        return await request.json()
    except Exception as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")

    raw = await request.body()
    for enc in ("utf-8", "latin-1"):
        try:
            decoded = raw.decode(enc, errors="replace")
            return json.loads(decoded)
        except ValueError:
            continue

    logger.error("Failed to decode Telegram webhook payload after fallbacks")
    return None


@router.post("/telegram-webhook", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(request: Request, update_router: UpdateRouter = Depends(get_update_router)):
    """
    Handle one Telegram update pushed by the Bot API.

    Routing is synchronous and runs in a worker thread; the response always
    acknowledges the update so Telegram does not redeliver it.
    """
    body = await parse_telegram_update(request)
    if not isinstance(body, dict):
        return TelegramWebhookResponse(success=False, message="Invalid telegram payload")

    logger.debug(f"Telegram webhook received: {body}")

    try:
        update = TelegramUpdate(**body)
    except ValidationError as e:
        logger.warning(f"Telegram update failed validation: {e}")
        return TelegramWebhookResponse(success=False, message="Invalid telegram payload")

    try:
        result = await asyncio.to_thread(update_router.route, update)
    except Exception as e:
        logger.error(f"Telegram webhook error: {e}", exc_info=True)
        return TelegramWebhookResponse(success=False, message=str(e))

    return TelegramWebhookResponse(success=result.ok, message=result.describe())
