"""Plugin system.

Imports are lazy so that ``botcore.plugins.base`` can be imported by plugin
modules without pulling in the manager and its dependencies.
"""

__all__ = [
    "Plugin",
    "PluginContext",
    "ScopedConfig",
    "PluginDescriptor",
    "PluginDiscovery",
    "PluginLifecycle",
    "PluginManager",
    "PluginRecord",
    "PluginRegistry",
    "PluginState",
    "resolve_load_order",
]


def __getattr__(name):
    if name == "Plugin":
        from botcore.plugins.base import Plugin
        return Plugin
    if name in ("PluginContext", "ScopedConfig"):
        from botcore.plugins import context
        return getattr(context, name)
    if name == "PluginDescriptor":
        from botcore.plugins.manifest import PluginDescriptor
        return PluginDescriptor
    if name == "PluginDiscovery":
        from botcore.plugins.discovery import PluginDiscovery
        return PluginDiscovery
    if name == "PluginLifecycle":
        from botcore.plugins.lifecycle import PluginLifecycle
        return PluginLifecycle
    if name == "PluginManager":
        from botcore.plugins.manager import PluginManager
        return PluginManager
    if name in ("PluginRecord", "PluginRegistry", "PluginState"):
        from botcore.plugins import registry
        return getattr(registry, name)
    if name == "resolve_load_order":
        from botcore.plugins.ordering import resolve_load_order
        return resolve_load_order
    raise AttributeError(f"module 'botcore.plugins' has no attribute {name!r}")
