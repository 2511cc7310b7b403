"""Chat transport boundary.

The core never talks to a chat network directly. It sees messages, chats and
reactions as the value types below, and reaches the network only through an
object implementing ``ChatTransport``.
"""

from typing import List, Optional, Protocol

from pydantic import BaseModel, Field


class Media(BaseModel):
    """A downloaded media attachment (base64 payload)."""

    mimetype: str
    data: str
    filename: Optional[str] = None


class Chat(BaseModel):
    """A chat (direct or group) messages are exchanged in."""

    id: str
    name: str = ""
    is_group: bool = False


class ChatMessage(BaseModel):
    """An inbound or sent chat message."""

    id: str
    chat_id: str
    sender: str
    body: str = ""
    timestamp: int = 0
    from_me: bool = False
    has_media: bool = False
    quoted_message_id: Optional[str] = None

    @property
    def has_quoted_msg(self) -> bool:
        return self.quoted_message_id is not None


class Reaction(BaseModel):
    """An emoji reaction placed on a message."""

    message_id: str
    sender: str
    reaction: str = Field(..., description="The emoji, empty when a reaction is removed")


class ChatTransport(Protocol):
    """Capabilities the chat client exposes to the core and to plugins."""

    async def send_message(
        self,
        chat_id: str,
        content: str = "",
        *,
        media: Optional[Media] = None,
        quoted_message_id: Optional[str] = None,
    ) -> Optional[ChatMessage]: ...

    async def reply(
        self,
        message: ChatMessage,
        content: str = "",
        *,
        media: Optional[Media] = None,
    ) -> Optional[ChatMessage]: ...

    async def react(self, message: ChatMessage, emoji: str) -> None: ...

    async def download_media(self, message: ChatMessage) -> Optional[Media]: ...

    async def get_message_by_id(self, message_id: str) -> Optional[ChatMessage]: ...

    async def get_reactions(self, message: ChatMessage) -> List[Reaction]: ...
