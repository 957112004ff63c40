from typing import List

from deskbot.handlers.base import CommandHandler, MessageHandler, message_context
from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.errors import DeskbotError, ValidationError
from deskbot.services.telegram_service import TelegramService
from deskbot.services.ticketing.formatter import TicketMessageFormatter
from deskbot.services.ticketing.workflow import TicketService

logger = get_logger("handlers.ticketing")


def parse_ticket_id(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise ValidationError("Ticket id must be a number.")


class TicketCommandHandler(CommandHandler):
    """
    /ticket                    help
    /ticket new                start a draft
    /ticket list               list own tickets
    /ticket <id>               show one ticket
    /ticket close <id> <note>  close a ticket
    """

    name = "/ticket"
    description = "Manage support tickets."

    def __init__(self, tickets: TicketService, formatter: TicketMessageFormatter, telegram: TelegramService):
        self.tickets = tickets
        self.formatter = formatter
        self.telegram = telegram

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        chat_id, thread_id, text = message_context(update)

        def reply(body: str) -> None:
            self.telegram.send_message(chat_id, body, message_thread_id=thread_id)

        tokens = text.split(None, 2)
        if len(tokens) < 2:
            reply(self.formatter.format_help())
            return

        sub_command = tokens[1].lower()
        try:
            if sub_command == "new":
                self._new_ticket(chat_id, user_id, reply)
            elif sub_command == "list":
                tickets = self.tickets.list_tickets_for_user(user_id)
                logger.info(f"User {user_id} requested ticket list ({len(tickets)} items)")
                reply(self.formatter.format_ticket_list(tickets))
            elif sub_command == "close":
                self._close_ticket(tokens, user_id, reply)
            elif sub_command == "help":
                reply(self.formatter.format_help())
            else:
                ticket_id = parse_ticket_id(tokens[1])
                ticket = self.tickets.get_ticket(ticket_id, user_id)
                if ticket is None:
                    reply(self.formatter.format_not_found(ticket_id))
                else:
                    reply(self.formatter.format_ticket_card(ticket))
        except DeskbotError as e:
            logger.warning(f"Ticket command '{sub_command}' failed for user {user_id}: {e.message}")
            reply(self.formatter.format_error(e.message))

    def _new_ticket(self, chat_id: int, user_id: int, reply) -> None:
        ticket = self.tickets.start_ticket_creation(chat_id, user_id)
        reply(self.formatter.format_creation_prompt(ticket))
        step = self.tickets.get_active_step(chat_id, user_id)
        if step is not None:
            reply(self.formatter.format_next_step_prompt(step))

    def _close_ticket(self, tokens: List[str], user_id: int, reply) -> None:
        if len(tokens) < 3:
            raise ValidationError("Provide the ticket id and a resolution note.")

        params = tokens[2].split(None, 1)
        ticket_id = parse_ticket_id(params[0])
        resolution = params[1] if len(params) > 1 else ""

        closed = self.tickets.close_ticket(ticket_id, user_id, resolution)
        reply(self.formatter.format_closure_prompt(closed))
        reply(self.formatter.format_closing_confirmation(closed))


class TicketingModule(MessageHandler):
    """Continues an open ticket draft with the user's next message."""

    name = "ticketing"

    def __init__(self, tickets: TicketService, formatter: TicketMessageFormatter, telegram: TelegramService):
        self.tickets = tickets
        self.formatter = formatter
        self.telegram = telegram
        self.command = TicketCommandHandler(tickets, formatter, telegram)

    def can_handle(self, update: TelegramUpdate, user_id: int) -> bool:
        message = update.message
        if message is None or message.text is None:
            return False
        return self.tickets.has_active_draft(message.chat.id, user_id)

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        chat_id, thread_id, text = message_context(update)

        def reply(body: str) -> None:
            self.telegram.send_message(chat_id, body, message_thread_id=thread_id)

        step = self.tickets.get_active_step(chat_id, user_id)
        if step is None:
            logger.warning(f"No active ticket step found for chat {chat_id}, user {user_id}")
            reply(self.formatter.format_error("No active ticket step found."))
            return

        try:
            ticket = self.tickets.collect_ticket_field(chat_id, user_id, text)
        except DeskbotError as e:
            logger.warning(f"Failed to collect {step.value} for chat {chat_id}, user {user_id}: {e.message}")
            reply(self.formatter.format_error(e.message))
            return

        reply(self.formatter.format_step_acknowledgement(step, ticket))
        next_step = self.tickets.get_active_step(chat_id, user_id)
        if next_step is not None:
            reply(self.formatter.format_next_step_prompt(next_step))
        else:
            logger.info(f"Ticket {ticket.id} creation complete")
            reply(self.formatter.format_creation_complete(ticket))

    def commands(self) -> List[CommandHandler]:
        return [self.command]
