from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str  # private, group, supergroup, channel
    title: Optional[str] = None
    username: Optional[str] = None
    is_forum: Optional[bool] = None


class TelegramAudio(BaseModel):
    file_id: str
    file_unique_id: str
    duration: int
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class TelegramVoice(BaseModel):
    file_id: str
    file_unique_id: str
    duration: int
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class TelegramVideoNote(BaseModel):
    file_id: str
    file_unique_id: str
    length: int
    duration: int
    file_size: Optional[int] = None


class TelegramMessage(BaseModel):
    message_id: int
    date: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")  # "from" is reserved in Python
    text: Optional[str] = None
    message_thread_id: Optional[int] = None  # Topic ID for forum groups
    reply_to_message: Optional["TelegramMessage"] = None
    caption: Optional[str] = None
    audio: Optional[TelegramAudio] = None
    voice: Optional[TelegramVoice] = None
    video_note: Optional[TelegramVideoNote] = None

    model_config = ConfigDict(populate_by_name=True)

    def has_audio_content(self) -> bool:
        return self.voice is not None or self.audio is not None or self.video_note is not None


TelegramMessage.model_rebuild()


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None


class TelegramFile(BaseModel):
    file_id: str
    file_unique_id: Optional[str] = None
    file_size: Optional[int] = None
    file_path: Optional[str] = None


class TelegramWebhookResponse(BaseModel):
    success: bool
    message: Optional[str] = None
