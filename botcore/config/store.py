"""Config store - the single validated, persisted config document."""

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

from botcore.config.schema import BotConfig
from botcore.errors import ConfigValidationError
from botcore.events import EventBus

logger = logging.getLogger(__name__)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` over ``base`` without touching either.

    Nested mappings merge recursively; every other value (lists included)
    from ``override`` replaces the one in ``base``.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigStore:
    """Holds the current config and every registered plugin config schema.

    Every change goes through ``update``/``update_raw``, which validate the
    complete document (root schema and each registered plugin schema) before
    anything is written. A failed update leaves the file and the in-memory
    document untouched.

    Listeners on ``events`` receive ``("update", new_config, modified_keys)``
    once the new document has been persisted.
    """

    def __init__(self, config_file: Path, schema: Type[BotConfig] = BotConfig):
        self.config_file = Path(config_file)
        self._schema = schema
        self._config: Optional[BotConfig] = None
        self._plugin_schemas: Dict[str, Type[BaseModel]] = {}
        self._update_lock = asyncio.Lock()
        self.events = EventBus(name="config", events=("update",))
        self.events.on("update", self._log_update)

    @property
    def loaded(self) -> bool:
        return self._config is not None

    def load(self) -> BotConfig:
        """Read and validate the persisted document.

        Raises:
            FileNotFoundError: If the config file does not exist
            ConfigValidationError: If the document is not valid JSON or fails the schema
        """
        text = self.config_file.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in {self.config_file}: {e}") from e

        self._config = self._validate(data)
        logger.info(f"Loaded config from {self.config_file} ({len(self._config.plugins)} plugin(s) enabled)")
        logger.debug(f"Loaded config: {self._config.model_dump()}")
        return self._config

    def get(self) -> BotConfig:
        """Return the current document. Callers must not mutate it."""
        if self._config is None:
            raise RuntimeError("Config has not been loaded")
        return self._config

    def get_raw(self) -> str:
        """Return the persisted document as text."""
        return self.config_file.read_text(encoding="utf-8")

    def register_plugin_schema(self, plugin_id: str, schema: Optional[Type[BaseModel]] = None) -> None:
        """Attach (or replace, or with None remove) a plugin's config schema.

        An existing partition for the plugin is validated right away.

        Raises:
            ConfigValidationError: If the stored partition does not fit ``schema``
        """
        if schema is None:
            self._plugin_schemas.pop(plugin_id, None)
            return

        if self._config is not None:
            partition = self._config.plugins_config.get(plugin_id)
            if partition is not None:
                self._validate_partition(plugin_id, schema, partition)

        self._plugin_schemas[plugin_id] = schema
        logger.debug(f"Registered config schema for plugin '{plugin_id}': {schema.__name__}")

    def plugin_schema(self, plugin_id: str) -> Optional[Type[BaseModel]]:
        return self._plugin_schemas.get(plugin_id)

    def plugin_config(self, plugin_id: str) -> Optional[Any]:
        """The plugin's partition, parsed by its schema when it has one.

        Returns:
            A schema instance, a copy of the raw partition for schemaless
            plugins, or None when the partition is absent
        """
        partition = self.get().plugins_config.get(plugin_id)
        if partition is None:
            return None

        schema = self._plugin_schemas.get(plugin_id)
        if schema is None:
            return copy.deepcopy(partition)
        return self._validate_partition(plugin_id, schema, partition)

    async def update(self, partial: Mapping[str, Any]) -> BotConfig:
        """Deep-merge ``partial`` over the current document and commit it.

        Raises:
            ConfigValidationError: If the merged document fails any schema
        """
        async with self._update_lock:
            merged = deep_merge(self.get().model_dump(mode="json"), partial)
            config = await self._commit(merged)

        await self.events.emit("update", config, list(partial.keys()))
        return config

    async def update_raw(self, document: Any) -> BotConfig:
        """Replace the whole document.

        Raises:
            ConfigValidationError: If the document fails any schema
        """
        async with self._update_lock:
            config = await self._commit(document)

        await self.events.emit("update", config, None)
        return config

    async def _commit(self, document: Any) -> BotConfig:
        config = self._validate(document)
        for plugin_id, schema in self._plugin_schemas.items():
            partition = config.plugins_config.get(plugin_id)
            if partition is not None:
                self._validate_partition(plugin_id, schema, partition)

        await asyncio.to_thread(self._write, config)
        self._config = config
        return config

    def _validate(self, document: Any) -> BotConfig:
        try:
            return self._schema.model_validate(document)
        except ValidationError as e:
            raise ConfigValidationError.from_pydantic(e) from e

    def _validate_partition(self, plugin_id: str, schema: Type[BaseModel], partition: Any) -> BaseModel:
        try:
            return schema.model_validate(partition)
        except ValidationError as e:
            raise ConfigValidationError.from_pydantic(e, plugin_id=plugin_id) from e

    def _write(self, config: BotConfig) -> None:
        """Write the document next to the target, then swap it in."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.config_file.with_name(self.config_file.name + ".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_file, self.config_file)
        logger.debug(f"Saved config to {self.config_file}")

    @staticmethod
    def _log_update(config: BotConfig, modified_keys: Optional[List[str]]) -> None:
        logger.debug(f"Updated config properties: {modified_keys}")
