"""Telegram update models accepted by the webhook."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Chat(BaseModel):
    """Conversation the message belongs to."""

    model_config = ConfigDict(extra="allow")

    id: int
    type: str | None = None


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    is_bot: bool = False
    username: str | None = None


class Message(BaseModel):
    """Subset of a Telegram message used by the command handlers."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message_id: int
    chat: Chat
    date: int | None = None
    text: str | None = None
    from_user: Optional[User] = Field(default=None, alias="from")


class Update(BaseModel):
    """Inbound update as posted by the platform.

    Update kinds other than ``message`` are kept as extra fields so decoding
    never rejects them; the dispatcher simply ignores them.
    """

    model_config = ConfigDict(extra="allow")

    update_id: int
    message: Optional[Message] = None

    @property
    def chat_id(self) -> Optional[int]:
        return self.message.chat.id if self.message else None
