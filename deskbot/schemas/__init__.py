from deskbot.schemas.telegram import TelegramMessage, TelegramUpdate, TelegramUser, TelegramWebhookResponse

__all__ = ["TelegramMessage", "TelegramUpdate", "TelegramUser", "TelegramWebhookResponse"]
