"""Tests for the reactor and viewonce plugins."""

import pytest

from botcore import constants
from botcore.errors import ConfigValidationError
from botcore.router import PERMISSION_DENIED_TEXT, SUCCESS_REACTION
from botcore.runtime import BotRuntime
from botcore.transport import Media, Reaction
from plugins.bundled.reactor.plugin import ReactionRule, compile_rule
from plugins.bundled.viewonce.plugin import KEEP_REACTION

REACTOR_CONFIG = {
    "reactions": [
        {"regex": ["hello", "i"], "emoji": "👋"},
        {"senders": ["admin@c.us"], "emoji": "⭐"},
        {"regex": "^secret", "min_level": 1, "emoji": "🔒"},
    ]
}


@pytest.fixture
def runtime(store, transport, tmp_path):
    return BotRuntime(
        store,
        transport,
        sources=constants.BUNDLED_PLUGIN_MODULES,
        storage_dir=tmp_path / "plugins",
    )


class TestReactor:
    """Tests for the reactor plugin."""

    def test_compile_rule_flags(self):
        """A [pattern, flags] rule compiles with the matching re flags."""
        rule = compile_rule(ReactionRule(regex=("hello", "i"), emoji="👋"))
        assert rule.regex.search("HELLO there")
        assert rule.senders is None

    @pytest.mark.asyncio
    async def test_reacts_to_matching_messages(self, runtime, store, transport, make_message, chat):
        """Each rule reacts only when its regex, sender and level conditions hold."""
        await store.update({"plugins": ["reactor"], "plugins_config": {"reactor": REACTOR_CONFIG}})
        await runtime.start()
        try:
            greeting = make_message("Hello everyone")
            await runtime.handle_message(greeting, chat)
            from_admin = make_message("ok", sender="admin@c.us")
            await runtime.handle_message(from_admin, chat)
            await runtime.handle_message(make_message("secret stuff"), chat)
            trusted_secret = make_message("secret stuff", sender="trusted@c.us")
            await runtime.handle_message(trusted_secret, chat)

            assert transport.reactions == [
                (greeting.id, "👋"),
                (from_admin.id, "⭐"),
                (trusted_secret.id, "🔒"),
            ]
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_rules_follow_config_updates(self, runtime, store, transport, make_message, chat):
        """Rules are recompiled when the plugin's partition changes."""
        await store.update({"plugins": ["reactor"], "plugins_config": {"reactor": REACTOR_CONFIG}})
        await runtime.start()
        try:
            await store.update({"plugins_config": {"reactor": {"reactions": [{"regex": "bye", "emoji": "👋"}]}}})

            await runtime.handle_message(make_message("hello"), chat)
            farewell = make_message("bye")
            await runtime.handle_message(farewell, chat)

            assert transport.reactions == [(farewell.id, "👋")]
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_invalid_reactor_config_rejected(self, runtime, store):
        """An invalid partition is rejected and the old rules stay active."""
        await store.update({"plugins": ["reactor"], "plugins_config": {"reactor": REACTOR_CONFIG}})
        await runtime.start()
        try:
            with pytest.raises(ConfigValidationError):
                await store.update({"plugins_config": {"reactor": {"reactions": [{"regex": "x"}]}}})
            assert len(runtime.plugins.get_plugin("reactor").rules) == 3
        finally:
            await runtime.stop()


class TestViewOnce:
    """Tests for the viewonce plugin."""

    @pytest.fixture
    def media_message(self, make_message, transport):
        message = make_message("", sender="friend@c.us", has_media=True)
        transport.messages[message.id] = message
        transport.media[message.id] = Media(mimetype="image/jpeg", data="/9j/", filename="photo.jpg")
        return message

    @pytest.mark.asyncio
    async def test_keep_requires_trusted(self, runtime, store, transport, make_message, chat, media_message):
        """Default users cannot run keep."""
        await store.update({"plugins": ["viewonce"]})
        await runtime.start()
        try:
            await runtime.handle_message(make_message("!keep", quoted_message_id=media_message.id), chat)
            assert transport.reply_texts == [PERMISSION_DENIED_TEXT]
            assert transport.sent == []
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_keep_quoted_media(self, runtime, store, transport, make_message, chat, media_message):
        """Keeping a quoted media message sends it privately to the requester."""
        await store.update({"plugins": ["viewonce"]})
        await runtime.start()
        try:
            command = make_message("!keep", sender="trusted@c.us", quoted_message_id=media_message.id)
            await runtime.handle_message(command, chat)

            assert transport.sent == [{
                "chat_id": "trusted@c.us",
                "content": "View-once media saved!",
                "media": transport.media[media_message.id],
                "quoted_message_id": media_message.id,
            }]
            assert transport.reactions == [(command.id, SUCCESS_REACTION)]
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_keep_by_message_id(self, runtime, store, transport, make_message, chat, media_message):
        """A message id argument is looked up; an unknown id sends nothing."""
        await store.update({"plugins": ["viewonce"]})
        await runtime.start()
        try:
            await runtime.handle_message(make_message(f"!keep {media_message.id}", sender="trusted@c.us"), chat)
            await runtime.handle_message(make_message("!keep unknown-id", sender="trusted@c.us"), chat)

            assert len(transport.sent) == 1
            assert transport.replies == []
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_keep_errors(self, runtime, store, transport, make_message, chat):
        """Missing quote or missing media are reported as command errors."""
        plain = make_message("just text", sender="friend@c.us")
        transport.messages[plain.id] = plain
        await store.update({"plugins": ["viewonce"]})
        await runtime.start()
        try:
            await runtime.handle_message(make_message("!keep", sender="trusted@c.us"), chat)
            await runtime.handle_message(make_message("!keep", sender="trusted@c.us", quoted_message_id=plain.id), chat)

            assert transport.reply_texts == [
                "Error: you need to reply to a view-once message to save it",
                "Error: the replied message doesn't have media",
            ]
            assert transport.sent == []
        finally:
            await runtime.stop()

    @pytest.mark.asyncio
    async def test_keep_reaction(self, runtime, store, transport, chat, media_message):
        """Only the infinity reaction from a trusted user saves the media."""
        await store.update({"plugins": ["viewonce"]})
        await runtime.start()
        try:
            untrusted = Reaction(message_id=media_message.id, sender="user@c.us", reaction=KEEP_REACTION)
            await runtime.handle_reaction(untrusted, media_message, chat)
            other_emoji = Reaction(message_id=media_message.id, sender="trusted@c.us", reaction="👍")
            await runtime.handle_reaction(other_emoji, media_message, chat)
            assert transport.sent == []

            trusted = Reaction(message_id=media_message.id, sender="trusted@c.us", reaction=KEEP_REACTION)
            await runtime.handle_reaction(trusted, media_message, chat)

            assert [s["chat_id"] for s in transport.sent] == ["trusted@c.us"]
        finally:
            await runtime.stop()
