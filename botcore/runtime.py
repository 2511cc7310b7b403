"""BotRuntime - the host that wires config, plugins, router and transport."""

import logging
from pathlib import Path
from typing import Iterable, Optional

from botcore import constants
from botcore.config.store import ConfigStore
from botcore.interactions import MessageEvent, ReactionEvent
from botcore.perms import PermissionLevel, PermissionResolver, resolve_permission_level
from botcore.pinger import PublicUrlPinger
from botcore.plugins.discovery import PluginSource
from botcore.plugins.manager import PluginManager
from botcore.ratelimits import RateLimiter
from botcore.router import CommandRouter
from botcore.transport import Chat, ChatMessage, ChatTransport, Reaction

logger = logging.getLogger(__name__)


class BotRuntime:
    """Turns inbound transport events into command dispatch and plugin events.

    For each message the router runs first (pending continuation, then
    command); afterwards every loaded plugin's ``message`` listeners run in
    plugin load order with one shared MessageEvent.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        transport: ChatTransport,
        sources: Iterable[PluginSource] = (),
        rate_limiter: Optional[RateLimiter] = None,
        permission_resolver: PermissionResolver = resolve_permission_level,
        command_prefix: str = constants.COMMAND_PREFIX,
        continuation_timeout: float = constants.CONTINUATION_TIMEOUT,
        storage_dir: Path = constants.PLUGIN_DB_DIR,
    ):
        self.config_store = config_store
        self.transport = transport
        self.permission_resolver = permission_resolver
        self.router = CommandRouter(
            config_store,
            transport,
            rate_limiter=rate_limiter,
            prefix=command_prefix,
            continuation_timeout=continuation_timeout,
        )
        self.plugins = PluginManager(
            config_store,
            self.router,
            storage_dir=storage_dir,
            sources=sources,
            runtime=self,
        )
        self.pinger = PublicUrlPinger(config_store)

    async def start(self) -> None:
        """Load config (if needed) and all enabled plugins."""
        if not self.config_store.loaded:
            self.config_store.load()
        self.plugins.discover()
        await self.plugins.load_all()
        self.pinger.start()
        logger.info("Bot runtime started")

    async def stop(self) -> None:
        await self.pinger.stop()
        await self.plugins.unload_all()
        self.router.continuations.clear()
        logger.info("Bot runtime stopped")

    def permission_level(self, sender: str) -> PermissionLevel:
        return self.permission_resolver(sender, self.config_store.get())

    async def handle_message(self, message: ChatMessage, chat: Chat) -> MessageEvent:
        """Process one inbound chat message.

        Returns:
            The MessageEvent the plugins saw
        """
        level = self.permission_level(message.sender)
        respond = self.router.make_respond(message)

        outcome = await self.router.dispatch(message, chat, level, respond)
        event = MessageEvent(
            message=message,
            chat=chat,
            sender=message.sender,
            permission_level=level,
            respond=respond,
            did_handle=outcome.handled,
        )

        for plugin in self.plugins.loaded_plugins():
            await plugin.events.emit("message", event)
        return event

    async def handle_reaction(self, reaction: Reaction, message: ChatMessage, chat: Chat) -> ReactionEvent:
        """Process a reaction placed on ``message``."""
        level = self.permission_level(reaction.sender)
        event = ReactionEvent(
            reaction=reaction,
            message=message,
            chat=chat,
            sender=reaction.sender,
            permission_level=level,
            respond=self.router.make_respond(message),
        )

        for plugin in self.plugins.loaded_plugins():
            await plugin.events.emit("reaction", event)
        return event
