"""Plugin descriptor - a plugin's identity and declared requirements."""

from typing import Any, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field


class PluginDescriptor(BaseModel):
    """Immutable description of one discovered plugin, built from its class attributes."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., pattern=r"^[a-z]+$", description="Unique plugin identifier (lowercase letters)")
    name: str = Field(..., min_length=1, description="Human-readable plugin name")
    description: str = Field(default="", description="Plugin description")
    version: str = Field(default="0.0.1", description="Plugin version")
    depends: Tuple[str, ...] = Field(default=(), description="IDs of plugins that must load first")
    hidden: bool = Field(default=False, description="Hide from help listings")
    database: bool = Field(default=False, description="Plugin needs its own SQLite database")
    config_schema: Optional[Type[BaseModel]] = Field(default=None, description="Schema of the plugin's config partition")
    source: str = Field(default="", description="Where the plugin was found, e.g. a module path")
    plugin_class: Any = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_plugin_class(cls, plugin_class: Any, source: str = "") -> "PluginDescriptor":
        """Describe a Plugin subclass.

        Raises:
            pydantic.ValidationError: If the class attributes are invalid
        """
        return cls(
            id=getattr(plugin_class, "id", ""),
            name=getattr(plugin_class, "name", ""),
            description=getattr(plugin_class, "description", ""),
            version=getattr(plugin_class, "version", "0.0.1"),
            depends=tuple(getattr(plugin_class, "depends", ())),
            hidden=getattr(plugin_class, "hidden", False),
            database=getattr(plugin_class, "database", False),
            config_schema=getattr(plugin_class, "config_schema", None),
            source=source or f"{plugin_class.__module__}.{plugin_class.__qualname__}",
            plugin_class=plugin_class,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "depends": list(self.depends),
            "hidden": self.hidden,
            "database": self.database,
            "source": self.source,
            "config_schema": self.config_schema.model_json_schema() if self.config_schema else None,
        }
