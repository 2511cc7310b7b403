"""Exception hierarchy for the bot runtime."""

from typing import Optional

from pydantic import ValidationError


class BotError(Exception):
    """Base class for all runtime errors."""


class ConfigValidationError(BotError):
    """The config document, or one plugin's partition, failed its schema.

    Attributes:
        plugin_id: Plugin whose partition failed, or None for the root schema
        errors: The list of error dicts reported by pydantic
    """

    def __init__(self, message: str, plugin_id: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.plugin_id = plugin_id
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc: ValidationError, plugin_id: Optional[str] = None) -> "ConfigValidationError":
        where = f"plugin '{plugin_id}' config" if plugin_id else "config"
        return cls(f"Invalid {where}: {exc}", plugin_id=plugin_id, errors=exc.errors())


class DuplicateIdentifierError(BotError):
    """Two plugins, or two commands, share the same identifier."""


class DependencyError(BotError):
    """A plugin depends on a missing plugin or the dependency graph has a cycle."""


class PluginLoadError(BotError):
    """A single plugin failed to construct or wire."""

    def __init__(self, plugin_id: str, message: str):
        super().__init__(f"Plugin '{plugin_id}' failed to load: {message}")
        self.plugin_id = plugin_id


class CommandError(BotError):
    """A user-facing problem reported by a command handler.

    The message is sent back to the user as-is and is not logged as a fault.
    """
