from typing import List

from deskbot.services.ticketing.domain import Step, Ticket

STEP_PROMPTS = {
    Step.SUMMARY: "Please provide a short summary for this ticket.",
    Step.PRIORITY: "Set the priority (low, medium, high, urgent).",
    Step.DETAILS: "Share the detailed description or reproduction steps.",
    Step.CONFIRMATION: "Confirm the ticket details.",
}

HELP_LINES = (
    "Use the ticket commands:",
    "/ticket new - start a ticket",
    "/ticket list - list your tickets",
    "/ticket <id> - show a ticket",
    "/ticket close <id> <note> - close a ticket",
)


class TicketMessageFormatter:
    """Texts sent to Telegram for ticket flows."""

    def format_creation_prompt(self, ticket: Ticket) -> str:
        return f"Ticket #{ticket.id} created. We need a summary, priority, and details."

    def format_next_step_prompt(self, step: Step) -> str:
        return STEP_PROMPTS[step]

    def format_step_acknowledgement(self, step: Step, ticket: Ticket) -> str:
        if step == Step.SUMMARY:
            return f"Summary saved: {ticket.summary}"
        if step == Step.PRIORITY:
            return f"Priority set to {ticket.priority.value}"
        if step == Step.DETAILS:
            return "Details captured."
        return "Confirmation received."

    def format_ticket_card(self, ticket: Ticket) -> str:
        return "\n".join(
            [
                f"Ticket #{ticket.id}",
                f"Status: {ticket.status.value}",
                f"Priority: {ticket.priority.value}",
                f"Created: {ticket.created_at.isoformat()}",
                f"Updated: {ticket.updated_at.isoformat()}",
                f"Summary: {ticket.summary}",
                f"Details: {ticket.details}",
            ]
        )

    def format_ticket_list(self, tickets: List[Ticket]) -> str:
        if not tickets:
            return "You have no tickets yet."
        lines = ["Your tickets:"]
        lines.extend(f"#{ticket.id} [{ticket.status.value}] {ticket.summary}" for ticket in tickets)
        return "\n".join(lines)

    def format_closure_prompt(self, ticket: Ticket) -> str:
        return f"Closing ticket #{ticket.id}. Capturing resolution."

    def format_closing_confirmation(self, ticket: Ticket) -> str:
        return f"Ticket #{ticket.id} closed."

    def format_creation_complete(self, ticket: Ticket) -> str:
        return f"Ticket #{ticket.id} is ready.\n{self.format_ticket_card(ticket)}"

    def format_not_found(self, ticket_id: int) -> str:
        return f"Ticket #{ticket_id} was not found or you do not have access."

    def format_help(self) -> str:
        return "\n".join(HELP_LINES)

    def format_error(self, message: str) -> str:
        return f"[Error] {message}"
