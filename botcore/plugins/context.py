"""PluginContext - the capabilities handed to each plugin at construction."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from botcore.config.store import ConfigStore
from botcore.plugins.manifest import PluginDescriptor
from botcore.transport import ChatTransport

if TYPE_CHECKING:
    from botcore.plugins.base import Plugin
    from botcore.runtime import BotRuntime

ConfigListener = Callable[[Optional[Any]], Union[Awaitable[None], None]]


class ScopedConfig:
    """Read access to one plugin's config partition, plus scoped writes.

    Example:
        settings = ctx.config.get()        # schema instance, dict, or None
        await ctx.config.update({"enabled": False})
    """

    def __init__(self, store: ConfigStore, plugin_id: str):
        self._store = store
        self.plugin_id = plugin_id
        self._listeners: List[Callable] = []
        self._logger = logging.getLogger(f"plugin.{plugin_id}")

    def get(self) -> Optional[Any]:
        """The partition parsed by the plugin's schema, or None if absent."""
        return self._store.plugin_config(self.plugin_id)

    async def update(self, partition: Mapping[str, Any]) -> Optional[Any]:
        """Merge ``partition`` into this plugin's partition and persist it."""
        await self._store.update({"plugins_config": {self.plugin_id: dict(partition)}})
        return self.get()

    def on_change(self, listener: ConfigListener) -> None:
        """Call ``listener(new_view)`` after updates that change this partition."""
        state = {"previous": self._partition()}

        # All plugins share the store's bus; a failing listener must not
        # keep the plugins after it from seeing the update
        async def forward(config, modified_keys):
            current = config.plugins_config.get(self.plugin_id)
            if current == state["previous"]:
                return
            state["previous"] = current
            try:
                result = listener(self.get())
                if result is not None:
                    await result
            except Exception:
                self._logger.error(
                    f"Config listener {getattr(listener, '__qualname__', listener)!s} failed",
                    exc_info=True,
                )

        self._store.events.on("update", forward)
        self._listeners.append(forward)

    def close(self) -> None:
        for forward in self._listeners:
            self._store.events.off("update", forward)
        self._listeners.clear()

    def _partition(self) -> Optional[dict]:
        return self._store.get().plugins_config.get(self.plugin_id)


class PluginContext:
    """Capabilities of one plugin instance.

    Built by the plugin lifecycle before the plugin is constructed. The
    logger and storage handle are created on first access; ``storage`` is
    None for plugins that did not declare ``database = True``.
    """

    def __init__(
        self,
        descriptor: PluginDescriptor,
        config_store: ConfigStore,
        transport: ChatTransport,
        dependencies: Mapping[str, Plugin],
        storage_dir: Path,
        runtime: Optional[BotRuntime] = None,
    ):
        self.descriptor = descriptor
        self.transport = transport
        self.dependencies: Dict[str, Plugin] = dict(dependencies)
        self.runtime = runtime
        self.config = ScopedConfig(config_store, descriptor.id)
        self._storage_dir = storage_dir
        self._storage: Optional[sqlite3.Connection] = None
        self._logger: Optional[logging.Logger] = None

    @property
    def plugin_id(self) -> str:
        return self.descriptor.id

    @property
    def logger(self) -> logging.Logger:
        if self._logger is None:
            self._logger = logging.getLogger(f"plugin.{self.plugin_id}")
        return self._logger

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger for this plugin.

        Args:
            name: Optional sub-logger name (appended to plugin.{plugin_id})
        """
        if name:
            return logging.getLogger(f"plugin.{self.plugin_id}.{name}")
        return self.logger

    @property
    def storage_path(self) -> Path:
        return self._storage_dir / f"{self.plugin_id}.sqlite"

    @property
    def storage(self) -> Optional[sqlite3.Connection]:
        """The plugin's own SQLite database, opened on first access."""
        if not self.descriptor.database:
            return None

        if self._storage is None:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
            self._storage = sqlite3.connect(self.storage_path)
            self._storage.execute("PRAGMA journal_mode = WAL;")
            self.logger.debug(f"Opened storage at {self.storage_path}")
        return self._storage

    def close(self) -> None:
        """Release the storage handle and config subscriptions."""
        self.config.close()
        if self._storage is not None:
            self._storage.close()
            self._storage = None
            self.logger.debug("Closed storage")
