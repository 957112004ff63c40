from deskbot.services.errors import (
    AuthorizationError,
    ConflictError,
    DeskbotError,
    NotFoundError,
    PersistenceError,
    TranscriptionError,
    TransportError,
    ValidationError,
)
from deskbot.services.result import Result

__all__ = [
    "DeskbotError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "PersistenceError",
    "TransportError",
    "TranscriptionError",
    "Result",
]
