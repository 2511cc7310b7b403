"""Commands, handler results and event payloads."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncGenerator,
    Awaitable,
    Callable,
    Generator,
    Optional,
    Sequence,
    Union,
)

from botcore.perms import PermissionLevel
from botcore.ratelimits import RateLimitRule
from botcore.transport import Chat, ChatMessage, Media, Reaction

if TYPE_CHECKING:
    from botcore.plugins.base import Plugin

BasicResult = Union[str, bool, Media, None]
InteractionResult = Union[BasicResult, "InteractionContinuation"]
InteractionResultGenerator = Union[
    Generator[BasicResult, Any, InteractionResult],
    AsyncGenerator[Union[BasicResult, "InteractionContinuation"], Any],
]

Respond = Callable[[InteractionResult], Awaitable[Optional[ChatMessage]]]


@dataclass
class InteractionArgs:
    """What a command or continuation handler is called with.

    ``data`` is the text after the command name for commands, and the
    continuation's stored data when resuming.
    """

    message: ChatMessage
    chat: Chat
    sender: str
    permission_level: PermissionLevel
    respond: Respond
    data: Any = None


Handler = Callable[
    [InteractionArgs],
    Union[InteractionResult, Awaitable[InteractionResult], InteractionResultGenerator],
]


@dataclass(frozen=True)
class Command:
    """A chat command owned by one plugin."""

    name: str
    description: str
    min_level: PermissionLevel
    handler: Handler
    hidden: bool = False
    rate_limit: Optional[Sequence[RateLimitRule]] = None

    def __post_init__(self):
        if not self.name or self.name != self.name.lower() or any(c.isspace() for c in self.name):
            raise ValueError(f"Invalid command name {self.name!r}: must be lowercase without whitespace")


class InteractionContinuation:
    """A handler result that suspends the interaction until the next message.

    The router sends ``message`` as the prompt, then routes the next message
    in the same conversation to ``handler`` with ``data``.

    Example:
        async def ask_name(self, args):
            return InteractionContinuation("what's your name?", self, self.greet)

        async def greet(self, args):
            return f"hi {args.message.body}!"
    """

    def __init__(
        self,
        message: str,
        plugin: Plugin,
        handler: Handler,
        data: Any = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            message: Prompt sent to the user when the interaction suspends
            plugin: Plugin the interaction belongs to
            handler: Called with the next message in the conversation
            data: Passed back to ``handler`` as ``args.data``
            timeout: Seconds to wait before discarding (router default if None)
        """
        self.message = message
        self.plugin = plugin
        self.handler = handler
        self.data = data
        self.timeout = timeout
        self._timer: Optional[asyncio.TimerHandle] = None

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self) -> str:
        plugin_id = getattr(self.plugin, "id", None)
        return f"<InteractionContinuation plugin={plugin_id} handler={getattr(self.handler, '__name__', self.handler)}>"


@dataclass
class MessageEvent:
    """Payload of the plugin ``message`` event.

    ``did_handle`` starts True when a command or continuation consumed the
    message; listeners may set it for the listeners after them.
    """

    message: ChatMessage
    chat: Chat
    sender: str
    permission_level: PermissionLevel
    respond: Respond
    did_handle: bool = False


@dataclass
class ReactionEvent:
    """Payload of the plugin ``reaction`` event."""

    reaction: Reaction
    message: ChatMessage
    chat: Chat
    sender: str
    permission_level: PermissionLevel
    respond: Respond
