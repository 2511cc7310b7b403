"""Plugin manager - top-level orchestrator for the plugin system."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from botcore.config.store import ConfigStore
from botcore.errors import DependencyError, PluginLoadError
from botcore.plugins.base import Plugin
from botcore.plugins.discovery import PluginDiscovery, PluginSource
from botcore.plugins.lifecycle import PluginLifecycle
from botcore.plugins.manifest import PluginDescriptor
from botcore.plugins.ordering import resolve_load_order
from botcore.plugins.registry import PluginRecord, PluginRegistry, PluginState
from botcore.router import CommandRouter

if TYPE_CHECKING:
    from botcore.runtime import BotRuntime

logger = logging.getLogger(__name__)


class PluginManager:
    """Top-level plugin system orchestrator.

    Coordinates discovery, dependency ordering, loading and unloading. At
    most one instance of each plugin exists at a time.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        router: CommandRouter,
        storage_dir: Path,
        sources: Iterable[PluginSource] = (),
        runtime: Optional[BotRuntime] = None,
    ):
        self.config_store = config_store
        self.router = router
        self.runtime = runtime

        self.registry = PluginRegistry()
        self.discovery = PluginDiscovery(sources)
        self.lifecycle = PluginLifecycle(config_store, router, storage_dir)

        self._descriptors: Dict[str, PluginDescriptor] = {}
        self._load_order: List[str] = []

    def discover(self) -> Dict[str, PluginDescriptor]:
        """Find all available plugins without instantiating them.

        Raises:
            DuplicateIdentifierError: If two sources declare the same plugin ID
        """
        self._descriptors = self.discovery.discover_all()
        for descriptor in self._descriptors.values():
            record = self.registry.get(descriptor.id)
            if record is None or not record.loaded:
                self.registry.register(PluginRecord(descriptor=descriptor))
        return dict(self._descriptors)

    async def load_all(self, plugin_ids: Optional[Iterable[str]] = None) -> List[str]:
        """Load the enabled plugins and their dependencies, dependencies first.

        Args:
            plugin_ids: Plugins to load; defaults to the config's ``plugins`` list

        Returns:
            IDs of the plugins loaded by this call, in load order

        Raises:
            DependencyError: On a missing dependency or a dependency cycle,
                before any plugin is instantiated
        """
        if not self._descriptors:
            self.discover()

        requested = list(plugin_ids) if plugin_ids is not None else list(self.config_store.get().plugins)
        available = []
        for plugin_id in requested:
            if plugin_id in self._descriptors:
                available.append(plugin_id)
            else:
                logger.error(f"Enabled plugin '{plugin_id}' was not discovered, skipping")

        order = resolve_load_order(available, self._descriptors)
        logger.debug(f"Plugin load order: {order}")

        loaded: List[str] = []
        for plugin_id in order:
            record = self.registry.get(plugin_id)
            if record.loaded:
                continue

            failed = [dep for dep in record.descriptor.depends if not self.is_loaded(dep)]
            if failed:
                record.state = PluginState.ERROR
                record.error = f"Dependencies not loaded: {', '.join(failed)}"
                logger.error(f"Skipping plugin {plugin_id}: {record.error}")
                continue

            if await self._load_record(record):
                loaded.append(plugin_id)

        logger.info(f"Plugin system initialized, {len(self._load_order)}/{len(order)} plugins loaded")
        return loaded

    async def load(self, plugin_id: str) -> PluginRecord:
        """Load one plugin; an already-loaded plugin is unloaded and loaded again.

        Plugins that depended on a reloaded plugin are reloaded after it.

        Raises:
            PluginLoadError: If the plugin is unknown or fails to load
            DependencyError: If its dependencies are not loaded
        """
        descriptor = self._descriptors.get(plugin_id)
        if descriptor is None:
            raise PluginLoadError(plugin_id, "plugin was not discovered")

        reload_after: List[str] = []
        if self.is_loaded(plugin_id):
            reload_after = [pid for pid in await self.unload(plugin_id) if pid != plugin_id]

        resolve_load_order([plugin_id], self._descriptors)
        missing = [dep for dep in descriptor.depends if not self.is_loaded(dep)]
        if missing:
            raise DependencyError(f"Plugin '{plugin_id}' needs unloaded plugin(s): {', '.join(missing)}")

        record = PluginRecord(descriptor=descriptor)
        self.registry.register(record)
        if not await self._load_record(record):
            raise PluginLoadError(plugin_id, record.error or "unknown error")

        for dependent_id in reversed(reload_after):
            dependent = PluginRecord(descriptor=self._descriptors[dependent_id])
            self.registry.register(dependent)
            await self._load_record(dependent)

        return record

    async def unload(self, plugin_id: str) -> List[str]:
        """Unload a plugin, after first unloading every plugin depending on it.

        Returns:
            IDs of the unloaded plugins, in unload order
        """
        if not self.is_loaded(plugin_id):
            return []

        affected = {plugin_id}
        for pid in self._load_order:
            if any(dep in affected for dep in self._descriptors[pid].depends):
                affected.add(pid)

        unloaded: List[str] = []
        for pid in reversed([p for p in self._load_order if p in affected]):
            await self.lifecycle.unload(self.registry.get(pid))
            self._load_order.remove(pid)
            unloaded.append(pid)
        return unloaded

    async def unload_all(self) -> None:
        """Unload every plugin in reverse load order."""
        for plugin_id in reversed(list(self._load_order)):
            await self.lifecycle.unload(self.registry.get(plugin_id))
            self._load_order.remove(plugin_id)
        logger.info("All plugins unloaded")

    def is_loaded(self, plugin_id: str) -> bool:
        record = self.registry.get(plugin_id)
        return record is not None and record.loaded

    def get_plugin(self, plugin_id: str) -> Optional[Plugin]:
        record = self.registry.get(plugin_id)
        return record.plugin if record is not None else None

    def loaded_plugins(self) -> List[Plugin]:
        """Loaded plugin instances in load order."""
        return [self.registry.get(pid).plugin for pid in self._load_order]

    @property
    def load_order(self) -> List[str]:
        return list(self._load_order)

    def get_plugin_info(self, plugin_id: str) -> Optional[dict]:
        """Get plugin information as dict."""
        record = self.registry.get(plugin_id)
        if not record:
            return None
        info = record.to_dict()
        info["enabled"] = plugin_id in self.config_store.get().plugins
        return info

    def list_plugins(self) -> List[dict]:
        """List all plugins as dicts."""
        return [p.to_dict() for p in self.registry.get_all()]

    async def _load_record(self, record: PluginRecord) -> bool:
        dependencies = {dep: self.registry.get(dep).plugin for dep in record.descriptor.depends}
        if not await self.lifecycle.load(record, dependencies, self.runtime):
            return False
        self._load_order.append(record.id)
        return True
