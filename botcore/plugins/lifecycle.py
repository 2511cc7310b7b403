"""Plugin lifecycle management - handles load and unload transitions."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional

from botcore.config.store import ConfigStore
from botcore.plugins.context import PluginContext
from botcore.plugins.registry import PluginRecord, PluginState
from botcore.router import CommandRouter

if TYPE_CHECKING:
    from botcore.plugins.base import Plugin
    from botcore.runtime import BotRuntime

logger = logging.getLogger(__name__)


class PluginLifecycle:
    """Manages plugin state transitions: discovered → loaded → unloaded."""

    def __init__(self, config_store: ConfigStore, router: CommandRouter, storage_dir: Path):
        self.config_store = config_store
        self.router = router
        self.storage_dir = storage_dir

    async def load(
        self,
        record: PluginRecord,
        dependencies: Mapping[str, Plugin],
        runtime: Optional[BotRuntime] = None,
    ) -> bool:
        """Construct and wire a plugin, then fire its ``load`` event.

        Registers the config schema, builds the context, instantiates the
        plugin and adds its commands. Any failure leaves nothing behind and
        puts the record in the ERROR state.

        Args:
            record: Plugin record to load
            dependencies: Already-loaded instances of the plugin's dependencies
            runtime: Host passed to ``load`` listeners

        Returns:
            True if loaded successfully
        """
        descriptor = record.descriptor
        context: Optional[PluginContext] = None
        plugin = None

        try:
            self.config_store.register_plugin_schema(descriptor.id, descriptor.config_schema)
            context = PluginContext(
                descriptor=descriptor,
                config_store=self.config_store,
                transport=self.router.transport,
                dependencies=dependencies,
                storage_dir=self.storage_dir,
                runtime=runtime,
            )
            plugin = descriptor.plugin_class(context)
            self.router.commands.register(plugin, plugin.commands)

        except Exception as e:
            if plugin is not None:
                self.router.commands.unregister_plugin(descriptor.id)
            if context is not None:
                context.close()
            self.config_store.register_plugin_schema(descriptor.id, None)
            record.state = PluginState.ERROR
            record.error = str(e)
            logger.error(f"Failed to load plugin {descriptor.id}: {e}")
            return False

        record.plugin = plugin
        record.context = context
        record.state = PluginState.LOADED
        record.error = None

        if not await plugin.events.emit("load", runtime):
            logger.warning(f"Plugin {descriptor.id} loaded, but a 'load' listener failed")

        logger.info(f"Loaded plugin: {descriptor.id} v{descriptor.version}")
        return True

    async def unload(self, record: PluginRecord) -> bool:
        """Fire ``unload`` and release everything the plugin held.

        Returns:
            True if the plugin was loaded
        """
        plugin = record.plugin
        if plugin is None or record.state != PluginState.LOADED:
            logger.debug(f"Plugin {record.id} not loaded, skip unload")
            return False

        if not await plugin.events.emit("unload"):
            logger.warning(f"An 'unload' listener of plugin {record.id} failed")

        removed = self.router.commands.unregister_plugin(record.id)
        self.router.continuations.discard_plugin(record.id)
        plugin.events.remove_all_listeners()
        if record.context is not None:
            record.context.close()
        self.config_store.register_plugin_schema(record.id, None)

        record.plugin = None
        record.context = None
        record.state = PluginState.UNLOADED
        logger.info(f"Unloaded plugin: {record.id} ({removed} command(s) removed)")
        return True
