"""Command router - turns chat messages into command and continuation calls."""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Tuple

from botcore.config.store import ConfigStore
from botcore.continuations import ContinuationStore
from botcore.errors import CommandError, DuplicateIdentifierError
from botcore.interactions import (
    Command,
    Handler,
    InteractionArgs,
    InteractionContinuation,
    InteractionResult,
    Respond,
)
from botcore.perms import PermissionLevel
from botcore.ratelimits import BucketRateLimiter, RateLimiter
from botcore.transport import Chat, ChatMessage, ChatTransport, Media

if TYPE_CHECKING:
    from botcore.plugins.base import Plugin

logger = logging.getLogger(__name__)

SUCCESS_REACTION = "✅"
PERMISSION_DENIED_TEXT = "You don't have permission to use this command."
RATE_LIMITED_TEXT = "You're sending commands too fast, please try again later."
FAILURE_TEXT = "Something went wrong while running that command."


class DispatchOutcome(str, Enum):
    """What happened to an inbound message at the router."""

    UNHANDLED = "unhandled"
    COMPLETED = "completed"
    SUSPENDED = "suspended"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    COMMAND_ERROR = "command_error"
    FAILED = "failed"

    @property
    def handled(self) -> bool:
        return self is not DispatchOutcome.UNHANDLED


@dataclass(frozen=True)
class RegisteredCommand:
    plugin: Plugin
    command: Command

    @property
    def plugin_id(self) -> str:
        return self.plugin.id


class CommandTable:
    """Global name -> command table shared by all loaded plugins."""

    def __init__(self):
        self._commands: Dict[str, RegisteredCommand] = {}

    def register(self, plugin: Plugin, commands: Iterable[Command]) -> None:
        """Add a plugin's commands, all or none.

        Raises:
            DuplicateIdentifierError: If a name is already taken or repeated
        """
        batch: Dict[str, RegisteredCommand] = {}
        for command in commands:
            owner = self._commands.get(command.name) or batch.get(command.name)
            if owner is not None:
                raise DuplicateIdentifierError(
                    f"Command '{command.name}' of plugin '{plugin.id}' is already "
                    f"registered by plugin '{owner.plugin_id}'"
                )
            batch[command.name] = RegisteredCommand(plugin=plugin, command=command)

        self._commands.update(batch)
        if batch:
            logger.info(f"Registered {len(batch)} command(s) for plugin '{plugin.id}': {', '.join(batch)}")

    def unregister_plugin(self, plugin_id: str) -> int:
        names = [name for name, entry in self._commands.items() if entry.plugin_id == plugin_id]
        for name in names:
            del self._commands[name]
        return len(names)

    def get(self, name: str) -> Optional[RegisteredCommand]:
        return self._commands.get(name)

    def resolve(self, name: str, aliases: Dict[str, str]) -> Optional[RegisteredCommand]:
        """Look a command up by name, following the alias map once."""
        return self._commands.get(aliases.get(name, name))

    def __iter__(self) -> Iterator[RegisteredCommand]:
        return iter(sorted(self._commands.values(), key=lambda e: e.command.name))

    def __contains__(self, name: str) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


class CommandRouter:
    """Routes inbound messages to pending continuations or commands.

    Per conversation the router is either idle or holds one suspended
    interaction. Idle conversations have their messages parsed as commands;
    a suspended conversation hands its next message to the continuation.
    Messages of one conversation are processed one at a time.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        transport: ChatTransport,
        rate_limiter: Optional[RateLimiter] = None,
        prefix: str = "!",
        continuation_timeout: float = 300.0,
    ):
        self.config_store = config_store
        self.transport = transport
        self.rate_limiter = rate_limiter or BucketRateLimiter()
        self.prefix = prefix
        self.commands = CommandTable()
        self.continuations = ContinuationStore(default_timeout=continuation_timeout)
        # key -> (lock, number of dispatches holding or waiting for it)
        self._conversation_locks: Dict[str, Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _conversation(self, key: str):
        """Process one message of a conversation at a time.

        The lock is dropped once no dispatch holds or waits for it.
        """
        lock, users = self._conversation_locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._conversation_locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._conversation_locks[key]
            if users == 1:
                del self._conversation_locks[key]
            else:
                self._conversation_locks[key] = (lock, users - 1)

    def conversation_key(self, message: ChatMessage, chat: Chat) -> str:
        return chat.id

    def parse(self, body: str) -> Optional[Tuple[str, str]]:
        """Split ``"!name rest"`` into ``("name", "rest")``."""
        if not body.startswith(self.prefix):
            return None

        parts = body[len(self.prefix):].strip().split(maxsplit=1)
        if not parts:
            return None
        name = parts[0].lower()
        data = parts[1].strip() if len(parts) > 1 else ""
        return name, data

    def make_respond(self, message: ChatMessage) -> Respond:
        """Build the ``respond`` callback replying to ``message``."""

        async def respond(result: InteractionResult) -> Optional[ChatMessage]:
            if isinstance(result, InteractionContinuation):
                result = result.message
            if result is True:
                await self.transport.react(message, SUCCESS_REACTION)
                return None
            if not result:
                return None
            if isinstance(result, Media):
                return await self.transport.reply(message, media=result)
            return await self.transport.reply(message, str(result))

        return respond

    async def dispatch(
        self,
        message: ChatMessage,
        chat: Chat,
        permission_level: PermissionLevel,
        respond: Optional[Respond] = None,
    ) -> DispatchOutcome:
        """Handle one inbound message.

        Returns:
            The outcome; UNHANDLED when the message was neither a
            continuation reply nor a known command
        """
        key = self.conversation_key(message, chat)
        respond = respond or self.make_respond(message)

        async with self._conversation(key):
            continuation = self.continuations.pop(key)
            if continuation is not None:
                logger.info(f"Resuming interaction in {key}: {continuation!r}")
                args = InteractionArgs(
                    message=message,
                    chat=chat,
                    sender=message.sender,
                    permission_level=permission_level,
                    respond=respond,
                    data=continuation.data,
                )
                return await self._run(continuation.handler, args, key, respond)

            parsed = self.parse(message.body)
            if parsed is None:
                return DispatchOutcome.UNHANDLED

            name, data = parsed
            config = self.config_store.get()
            entry = self.commands.resolve(name, config.aliases)
            if entry is None:
                logger.debug(f"Unknown command '{name}' from {message.sender}")
                return DispatchOutcome.UNHANDLED

            command = entry.command
            if permission_level < command.min_level:
                logger.info(
                    f"Refused '{command.name}' for {message.sender}: "
                    f"level {permission_level.name} < {command.min_level.name}"
                )
                await self._notify(respond, PERMISSION_DENIED_TEXT)
                return DispatchOutcome.PERMISSION_DENIED

            # No await between the permission check and this call, so the
            # check and the quota increment happen as one step
            checks = [(message.sender, config.ratelimit.for_level(permission_level))]
            if command.rate_limit:
                checks.insert(0, (f"{message.sender}:{command.name}", command.rate_limit))
            if not self.rate_limiter.try_acquire(checks):
                logger.info(f"Rate limited '{command.name}' for {message.sender}")
                await self._notify(respond, RATE_LIMITED_TEXT)
                return DispatchOutcome.RATE_LIMITED

            logger.info(f"Running command '{command.name}' ({entry.plugin_id}) for {message.sender} in {key}")
            args = InteractionArgs(
                message=message,
                chat=chat,
                sender=message.sender,
                permission_level=permission_level,
                respond=respond,
                data=data,
            )
            return await self._run(command.handler, args, key, respond)

    async def _run(self, handler: Handler, args: InteractionArgs, key: str, respond: Respond) -> DispatchOutcome:
        try:
            result = handler(args)
            if inspect.isawaitable(result):
                result = await result
            if inspect.isasyncgen(result):
                result = await self._drain_async(result, respond)
            elif inspect.isgenerator(result):
                result = await self._drain(result, respond)

            if isinstance(result, InteractionContinuation):
                await respond(result.message)
                self.continuations.set(key, result)
                return DispatchOutcome.SUSPENDED

            if result:
                await respond(result)
            return DispatchOutcome.COMPLETED

        except CommandError as e:
            await self._notify(respond, f"Error: {e}")
            return DispatchOutcome.COMMAND_ERROR

        except Exception:
            logger.error(
                f"Handler {getattr(handler, '__qualname__', handler)!s} failed "
                f"for {args.sender} in {key}",
                exc_info=True,
            )
            self.continuations.pop(key)
            await self._notify(respond, FAILURE_TEXT)
            return DispatchOutcome.FAILED

    @staticmethod
    async def _drain(generator, respond: Respond) -> InteractionResult:
        """Send each yielded result; return the generator's final result."""
        try:
            while True:
                item = next(generator)
                if isinstance(item, InteractionContinuation):
                    generator.close()
                    return item
                await respond(item)
        except StopIteration as stop:
            return stop.value

    @staticmethod
    async def _drain_async(generator, respond: Respond) -> InteractionResult:
        """Async generators cannot return a value, so a yielded continuation ends them."""
        final = None
        async for item in generator:
            if isinstance(item, InteractionContinuation):
                final = item
                break
            await respond(item)
        await generator.aclose()
        return final

    @staticmethod
    async def _notify(respond: Respond, text: str) -> None:
        try:
            await respond(text)
        except Exception:
            logger.error(f"Failed to send notice: {text!r}", exc_info=True)

    def help_pages(self, permission_level: PermissionLevel, page_size: Optional[int] = None) -> List[str]:
        """Visible commands usable at ``permission_level``, split into pages.

        Args:
            permission_level: Only commands at or below this level are listed
            page_size: Max characters per page (config ``help_page_size`` if None)
        """
        page_size = page_size or self.config_store.get().help_page_size
        lines = [
            f"{self.prefix}{entry.command.name}: {entry.command.description}"
            for entry in self.commands
            if not entry.command.hidden
            and not entry.plugin.hidden
            and entry.command.min_level <= permission_level
        ]

        pages: List[str] = []
        current = ""
        for line in lines:
            candidate = f"{current}\n{line}" if current else line
            if current and len(candidate) > page_size:
                pages.append(current)
                current = line
            else:
                current = candidate
        if current:
            pages.append(current)
        return pages
