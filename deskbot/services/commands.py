from typing import Iterable, List, Optional

from deskbot.handlers.base import CommandHandler
from deskbot.logging_config import get_logger

logger = get_logger("commands")


def normalize_command(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    normalized = name.strip().lower()
    return normalized or None


class CommandRegistry:
    """
    Index of command handlers by trigger, built once at startup.

    Names are trimmed and lower-cased. On a name collision the first handler wins and the
    duplicate is dropped with a warning, so a misconfigured plugin never prevents startup.
    """

    def __init__(self, handlers: Iterable[CommandHandler]):
        index: dict[str, CommandHandler] = {}
        for handler in handlers:
            if handler is None:
                continue
            key = normalize_command(handler.name)
            if key is None:
                logger.warning(f"Skipping command handler {type(handler).__name__} because it has an empty name")
                continue
            if key in index:
                logger.warning(
                    f"Duplicate command name '{handler.name}' found for {type(index[key]).__name__} "
                    f"and {type(handler).__name__}; keeping the first instance"
                )
                continue
            index[key] = handler

        self._handlers = index
        logger.info(f"Registered {len(index)} command handler(s): {list(index)}")

    def find(self, token: Optional[str]) -> Optional[CommandHandler]:
        key = normalize_command(token)
        if key is None:
            return None
        return self._handlers.get(key)

    def handlers(self, exclude: Optional[CommandHandler] = None) -> List[CommandHandler]:
        """Handlers in registration order, without `exclude`."""
        return [handler for handler in self._handlers.values() if handler is not exclude]

    def names(self) -> List[str]:
        return list(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
