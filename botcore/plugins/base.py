"""Plugin base class."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel

from botcore.events import EventBus, Listener
from botcore.interactions import Command
from botcore.plugins.context import PluginContext
from botcore.transport import ChatTransport

PLUGIN_EVENTS = ("load", "unload", "message", "reaction")


class Plugin:
    """Base class for all bot plugins.

    Subclasses set the class attributes below, then register their commands
    and event listeners in ``__init__``::

        class EchoPlugin(Plugin):
            id = "echo"
            name = "Echo"
            description = "Repeats what you say"

            def __init__(self, ctx):
                super().__init__(ctx)
                self.register_commands([
                    Command("echo", "Repeat a message", PermissionLevel.DEFAULT, self.echo),
                ])
                self.on("message", self.on_message)

            async def echo(self, args):
                return args.data

    Events: ``load`` (runtime), ``unload`` (), ``message`` (MessageEvent),
    ``reaction`` (ReactionEvent).
    """

    id: ClassVar[str] = ""
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    version: ClassVar[str] = "0.0.1"

    # IDs of plugins that must be loaded before this one
    depends: ClassVar[Tuple[str, ...]] = ()
    hidden: ClassVar[bool] = False
    database: ClassVar[bool] = False
    config_schema: ClassVar[Optional[Type[BaseModel]]] = None

    def __init__(self, ctx: PluginContext):
        self.ctx = ctx
        self.events = EventBus(name=f"plugin.{self.id}", events=PLUGIN_EVENTS)
        self._commands: List[Command] = []

    def register_commands(self, commands: Iterable[Command]) -> None:
        """Register commands. Only call this from ``__init__``."""
        self._commands.extend(commands)

    @property
    def commands(self) -> Tuple[Command, ...]:
        return tuple(self._commands)

    def on(self, event: str, listener: Optional[Listener] = None):
        """Subscribe to one of this plugin's events."""
        return self.events.on(event, listener)

    @property
    def logger(self) -> logging.Logger:
        return self.ctx.logger

    @property
    def config(self) -> Optional[Any]:
        """This plugin's config partition (see ScopedConfig.get)."""
        return self.ctx.config.get()

    @property
    def db(self) -> Optional[sqlite3.Connection]:
        return self.ctx.storage

    @property
    def client(self) -> ChatTransport:
        return self.ctx.transport

    @property
    def dependencies(self) -> Dict[str, Plugin]:
        return self.ctx.dependencies

    def get_info(self) -> Dict[str, Any]:
        """Return plugin metadata as a dict."""
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "commands": [c.name for c in self._commands],
        }

    def __repr__(self) -> str:
        return f"<Plugin {self.id} v{self.version}>"
