from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from deskbot.config import Settings
from deskbot.handlers.menu import MenuCommandHandler
from deskbot.handlers.relay import ConversationalRelayModule
from deskbot.handlers.ticketing import TicketingModule
from deskbot.handlers.transcription import TranscriptionModule
from deskbot.logging_config import get_logger
from deskbot.services.commands import CommandRegistry
from deskbot.services.conversation_context import ConversationContextCache
from deskbot.services.history_store import (
    InMemoryMessageLogRepository,
    MessageLogRepository,
    SqlMessageLogRepository,
)
from deskbot.services.llm import ChatCompletionClient, OpenAIProvider, TranscriptionClient
from deskbot.services.telegram_service import TelegramService
from deskbot.services.ticketing import (
    InMemoryTicketRepository,
    InMemoryTicketSessionManager,
    SqlTicketRepository,
    SqlTicketSessionManager,
    TicketMessageFormatter,
    TicketService,
)
from deskbot.services.transcription_service import TranscriptionService
from deskbot.services.update_router import UpdateRouter
from deskbot.services.user_service import InMemoryUserService, SqlUserService, UserService

logger = get_logger("bootstrap")


@dataclass
class Bot:
    router: UpdateRouter
    telegram: TelegramService
    tickets: TicketService
    context: ConversationContextCache
    commands: CommandRegistry


def build_bot(
    settings: Settings,
    session_factory: Optional[Callable[[], Session]] = None,
    telegram: Optional[TelegramService] = None,
    completion: Optional[ChatCompletionClient] = None,
    transcription_client: Optional[TranscriptionClient] = None,
) -> Bot:
    """Wire stores, services and modules. Module order decides routing priority."""
    telegram = telegram or TelegramService(settings.telegram_bot_token)

    if completion is None or transcription_client is None:
        provider = OpenAIProvider(
            settings.openai_api_key,
            default_model=settings.openai_model,
            transcription_model=settings.transcription_model,
        )
        completion = completion or provider
        transcription_client = transcription_client or provider

    user_service: UserService
    message_log: MessageLogRepository
    if settings.storage_backend == "database":
        if session_factory is None:
            from deskbot.database import SessionLocal

            session_factory = SessionLocal
        user_service = SqlUserService(session_factory)
        message_log = SqlMessageLogRepository(session_factory)
        tickets = TicketService(SqlTicketRepository(session_factory), SqlTicketSessionManager(session_factory))
    else:
        user_service = InMemoryUserService()
        message_log = InMemoryMessageLogRepository()
        tickets = TicketService(InMemoryTicketRepository(), InMemoryTicketSessionManager())

    context = ConversationContextCache(message_log, settings.conversation_max_messages)

    modules = [
        TicketingModule(tickets, TicketMessageFormatter(), telegram),
        TranscriptionModule(TranscriptionService(telegram, transcription_client), telegram),
        ConversationalRelayModule(context, completion, message_log, telegram),
    ]

    menu = MenuCommandHandler(telegram)
    command_handlers = [menu]
    for module in modules:
        command_handlers.extend(module.commands())
    registry = CommandRegistry(command_handlers)
    menu.registry = registry

    router = UpdateRouter(registry, user_service, telegram, modules, command_prefix=settings.command_prefix)
    logger.info(
        f"Bot ready with storage={settings.storage_backend}, modules={[module.name for module in modules]}"
    )
    return Bot(router=router, telegram=telegram, tickets=tickets, context=context, commands=registry)
