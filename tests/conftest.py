"""Shared fixtures: a config file in tmp_path, a loaded store and a recording transport."""

import copy
import itertools
import json
from typing import Dict, List, Optional

import pytest

from botcore.config.store import ConfigStore
from botcore.transport import Chat, ChatMessage, Media, Reaction

BASE_CONFIG = {
    "plugins": [],
    "whitelist": {"admin": ["admin@c.us"], "trusted": ["trusted@c.us"]},
    "ratelimit": {
        "admin": [],
        "trusted": [{"limit": 100, "duration": 60000}],
        "default": [{"limit": 100, "duration": 60000}],
    },
}


class FakeTransport:
    """Records everything the bot sends instead of talking to a chat network."""

    def __init__(self):
        self.sent: List[dict] = []
        self.replies: List[dict] = []
        self.reactions: List[tuple] = []
        self.messages: Dict[str, ChatMessage] = {}
        self.media: Dict[str, Media] = {}
        self._ids = itertools.count(1)

    def _sent_message(self, chat_id: str, body: str) -> ChatMessage:
        return ChatMessage(id=f"sent-{next(self._ids)}", chat_id=chat_id, sender="bot@c.us", body=body, from_me=True)

    async def send_message(self, chat_id, content="", *, media=None, quoted_message_id=None):
        self.sent.append({
            "chat_id": chat_id,
            "content": content,
            "media": media,
            "quoted_message_id": quoted_message_id,
        })
        return self._sent_message(chat_id, content)

    async def reply(self, message, content="", *, media=None):
        self.replies.append({"to": message.id, "content": content, "media": media})
        return self._sent_message(message.chat_id, content)

    async def react(self, message, emoji):
        self.reactions.append((message.id, emoji))

    async def download_media(self, message):
        return self.media.get(message.id)

    async def get_message_by_id(self, message_id):
        return self.messages.get(message_id)

    async def get_reactions(self, message):
        return [Reaction(message_id=message.id, sender="", reaction=emoji)
                for msg_id, emoji in self.reactions if msg_id == message.id]

    @property
    def reply_texts(self) -> List[str]:
        return [r["content"] for r in self.replies]


@pytest.fixture
def config_data():
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def config_file(tmp_path, config_data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data), encoding="utf-8")
    return path


@pytest.fixture
def store(config_file):
    config_store = ConfigStore(config_file)
    config_store.load()
    return config_store


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_message():
    counter = itertools.count(1)

    def factory(body: str = "", sender: str = "user@c.us", chat_id: str = "chat@c.us",
                quoted_message_id: Optional[str] = None, has_media: bool = False) -> ChatMessage:
        return ChatMessage(
            id=f"msg-{next(counter)}",
            chat_id=chat_id,
            sender=sender,
            body=body,
            has_media=has_media,
            quoted_message_id=quoted_message_id,
        )

    return factory


@pytest.fixture
def chat():
    return Chat(id="chat@c.us", name="Test chat")
