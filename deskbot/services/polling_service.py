import asyncio
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.telegram_service import TelegramService
from deskbot.services.update_router import UpdateRouter

logger = get_logger("polling")

UpdateKey = Tuple[int, Optional[int]]


def update_key(update: TelegramUpdate) -> UpdateKey:
    message = update.message
    if message is None:
        return (0, None)
    sender_id = message.from_user.id if message.from_user else None
    return (message.chat.id, sender_id)


def group_updates(updates: List[TelegramUpdate]) -> Dict[UpdateKey, List[TelegramUpdate]]:
    """Group a batch by (chat, sender), keeping arrival order inside each group."""
    groups: Dict[UpdateKey, List[TelegramUpdate]] = OrderedDict()
    for update in updates:
        groups.setdefault(update_key(update), []).append(update)
    return groups


def _route_group(router: UpdateRouter, group: List[TelegramUpdate]) -> int:
    handled = 0
    for update in group:
        try:
            if router.route(update).ok:
                handled += 1
        except Exception as e:
            logger.error(f"Routing update {update.update_id} failed: {e}", exc_info=True)
    return handled


async def dispatch_updates(router: UpdateRouter, updates: List[TelegramUpdate]) -> int:
    """Route a batch. Different keys run concurrently; one key's updates run in order."""
    if not updates:
        return 0
    groups = group_updates(updates)
    counts = await asyncio.gather(
        *(asyncio.to_thread(_route_group, router, group) for group in groups.values())
    )
    return sum(counts)


def next_offset(updates: List[TelegramUpdate], current: Optional[int]) -> Optional[int]:
    if not updates:
        return current
    return max(update.update_id for update in updates) + 1


async def poll_once(
    telegram: TelegramService, router: UpdateRouter, offset: Optional[int], timeout: int
) -> Optional[int]:
    """Fetch one getUpdates batch, route it and return the offset for the next call."""
    updates = await asyncio.to_thread(telegram.get_updates, offset, timeout)
    if updates:
        handled = await dispatch_updates(router, updates)
        logger.info(
            "Polling batch processed",
            extra={"context": {"received": len(updates), "handled": handled}},
        )
    return next_offset(updates, offset)
