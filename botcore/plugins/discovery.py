"""Plugin discovery - finds plugin classes without instantiating them."""

import importlib
import inspect
import logging
from types import ModuleType
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from botcore.errors import DuplicateIdentifierError
from botcore.plugins.base import Plugin
from botcore.plugins.manifest import PluginDescriptor

logger = logging.getLogger(__name__)

PluginSource = Union[str, type]


class PluginDiscovery:
    """Builds descriptors from plugin sources.

    A source is either a Plugin subclass or a dotted module path. A module
    provides its plugin through a ``PLUGIN_CLASS`` attribute or, failing
    that, by defining exactly one Plugin subclass.
    """

    def __init__(self, sources: Iterable[PluginSource]):
        self.sources = list(sources)

    def discover_all(self) -> Dict[str, PluginDescriptor]:
        """Describe every plugin from the configured sources.

        Sources that fail to import or describe themselves are logged and
        skipped.

        Raises:
            DuplicateIdentifierError: If two sources declare the same plugin ID
        """
        discovered: Dict[str, PluginDescriptor] = {}

        for source in self.sources:
            descriptor = self.discover_single(source)
            if descriptor is None:
                continue

            existing = discovered.get(descriptor.id)
            if existing is not None:
                raise DuplicateIdentifierError(
                    f"Duplicate plugin ID '{descriptor.id}' found in {descriptor.source} "
                    f"(already declared by {existing.source})"
                )
            discovered[descriptor.id] = descriptor

        logger.info(f"Discovered {len(discovered)} plugin(s)")
        return discovered

    def discover_single(self, source: PluginSource) -> Optional[PluginDescriptor]:
        """Describe the plugin behind one source, or None if it has none."""
        try:
            if isinstance(source, str):
                module = importlib.import_module(source)
                plugin_class = self._find_plugin_class(module)
                label = source
            else:
                plugin_class = source
                label = ""

            if plugin_class is None:
                logger.debug(f"Skipping {source}: no plugin class")
                return None
            if not (isinstance(plugin_class, type) and issubclass(plugin_class, Plugin)):
                logger.warning(f"Skipping {source}: {plugin_class!r} is not a Plugin subclass")
                return None

            descriptor = PluginDescriptor.from_plugin_class(plugin_class, source=label)
            logger.debug(f"Discovered plugin: {descriptor.id} ({descriptor.source})")
            return descriptor

        except ValidationError as e:
            logger.error(f"Invalid plugin declaration in {source}: {e}")
        except ImportError as e:
            logger.error(f"Cannot import plugin module {source}: {e}")

        return None

    @staticmethod
    def _find_plugin_class(module: ModuleType) -> Optional[type]:
        plugin_class = getattr(module, "PLUGIN_CLASS", None)
        if plugin_class is not None:
            return plugin_class

        candidates: List[type] = [
            obj for _, obj in inspect.getmembers(module, inspect.isclass)
            if issubclass(obj, Plugin) and obj is not Plugin and obj.__module__ == module.__name__
        ]
        if len(candidates) == 1:
            return candidates[0]
        if candidates:
            logger.warning(
                f"Module {module.__name__} defines {len(candidates)} plugins, "
                f"set PLUGIN_CLASS to choose one"
            )
        return None
