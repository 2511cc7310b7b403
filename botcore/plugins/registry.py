"""Plugin registry - tracks the state of every plugin the runtime has touched."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from botcore.plugins.manifest import PluginDescriptor

if TYPE_CHECKING:
    from botcore.plugins.base import Plugin
    from botcore.plugins.context import PluginContext

logger = logging.getLogger(__name__)


class PluginState(str, Enum):
    """Plugin lifecycle states."""

    DISCOVERED = "discovered"
    LOADED = "loaded"
    UNLOADED = "unloaded"
    ERROR = "error"


@dataclass
class PluginRecord:
    """A discovered plugin and, once loaded, its live instance."""

    descriptor: PluginDescriptor
    state: PluginState = PluginState.DISCOVERED
    plugin: Optional[Plugin] = field(default=None, repr=False)
    context: Optional[PluginContext] = field(default=None, repr=False)
    error: Optional[str] = None

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def loaded(self) -> bool:
        return self.state == PluginState.LOADED

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        info = self.descriptor.to_dict()
        info.update({
            "state": self.state.value,
            "error": self.error,
            "commands": [c.name for c in self.plugin.commands] if self.plugin else [],
        })
        return info


class PluginRegistry:
    """Central registry for all plugins."""

    def __init__(self):
        self._plugins: Dict[str, PluginRecord] = {}

    def register(self, record: PluginRecord) -> None:
        """Register a plugin record, replacing a record that is not loaded."""
        existing = self._plugins.get(record.id)
        if existing is not None and existing.loaded:
            raise ValueError(f"Plugin '{record.id}' is loaded and cannot be replaced")
        self._plugins[record.id] = record
        logger.debug(f"Registered plugin: {record.id} ({record.descriptor.source})")

    def get(self, plugin_id: str) -> Optional[PluginRecord]:
        """Get a plugin by ID."""
        return self._plugins.get(plugin_id)

    def get_all(self) -> list[PluginRecord]:
        """Get all registered plugins."""
        return list(self._plugins.values())

    def has(self, plugin_id: str) -> bool:
        """Check if a plugin is registered."""
        return plugin_id in self._plugins

