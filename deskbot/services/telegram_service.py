from typing import List, Optional

import httpx

from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramFile, TelegramUpdate
from deskbot.services.errors import TransportError

logger = get_logger("telegram_service")


class TelegramService:
    """Bot API transport. Sending is best-effort: failures are logged and returned, never raised."""

    BASE_URL = "https://api.telegram.org/bot{token}"
    FILE_URL = "https://api.telegram.org/file/bot{token}/{path}"

    def __init__(self, bot_token: str, timeout: float = 30.0):
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.timeout = timeout

    def _make_request(self, method: str, data: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        """Make request to Telegram API."""
        url = f"{self.base_url}/{method}"
        try:
            with httpx.Client(timeout=timeout or self.timeout) as client:
                response = client.post(url, json=data or {})
                result = response.json()
        except Exception as e:
            logger.error(f"Telegram API error: {e}")
            return {"ok": False, "error": str(e)}

        if not result.get("ok"):
            logger.warning(f"Telegram {method} failed: {result.get('description')}")
        return result

    def send_message(
        self,
        chat_id: int,
        text: str,
        message_thread_id: Optional[int] = None,
        parse_mode: Optional[str] = None,
        reply_to_message_id: Optional[int] = None,
    ) -> dict:
        """Send message to Telegram chat."""
        data = {
            "chat_id": chat_id,
            "text": text,
        }
        if parse_mode:
            data["parse_mode"] = parse_mode
        if message_thread_id:
            data["message_thread_id"] = message_thread_id
        if reply_to_message_id:
            data["reply_to_message_id"] = reply_to_message_id

        return self._make_request("sendMessage", data)

    def send_chat_action(self, chat_id: int, action: str = "typing", message_thread_id: Optional[int] = None) -> dict:
        """Show a chat action such as the typing indicator."""
        data = {"chat_id": chat_id, "action": action}
        if message_thread_id:
            data["message_thread_id"] = message_thread_id
        return self._make_request("sendChatAction", data)

    def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> List[TelegramUpdate]:
        """Long-poll for new updates. Unparseable updates are skipped."""
        data = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            data["offset"] = offset

        result = self._make_request("getUpdates", data, timeout=timeout + 10)
        if not result.get("ok"):
            return []

        updates = []
        for raw in result.get("result", []):
            try:
                updates.append(TelegramUpdate(**raw))
            except Exception as e:
                logger.warning(f"Skipping malformed update {raw.get('update_id')}: {e}")
        return updates

    def get_file(self, file_id: str) -> TelegramFile:
        """Resolve a file_id to a downloadable path. Raises TransportError."""
        result = self._make_request("getFile", {"file_id": file_id})
        if not result.get("ok"):
            raise TransportError(f"Failed to resolve file {file_id}: {result.get('description') or result.get('error')}")
        return TelegramFile(**result["result"])

    def download_file(self, file_path: str) -> bytes:
        """Download file content by its Bot API path. Raises TransportError."""
        url = self.FILE_URL.format(token=self.bot_token, path=file_path)
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to download {file_path}: {e}") from e

        if response.status_code != 200:
            raise TransportError(f"Failed to download {file_path}: HTTP {response.status_code}")
        return response.content
