"""Tests for plugin discovery, ordering and lifecycle."""

import pytest
from pydantic import BaseModel

from botcore.errors import DependencyError, DuplicateIdentifierError, PluginLoadError
from botcore.interactions import Command
from botcore.perms import PermissionLevel
from botcore.plugins.base import Plugin
from botcore.plugins.discovery import PluginDiscovery
from botcore.plugins.manager import PluginManager
from botcore.plugins.ordering import resolve_load_order
from botcore.plugins.registry import PluginState
from botcore.router import CommandRouter

constructed = []


@pytest.fixture(autouse=True)
def reset_constructed():
    constructed.clear()
    yield
    constructed.clear()


class RecordingPlugin(Plugin):
    """Remembers construction order and lifecycle events."""

    def __init__(self, ctx):
        super().__init__(ctx)
        constructed.append(self.id)
        self.seen = []
        self.on("load", lambda runtime: self.seen.append("load"))
        self.on("unload", lambda: self.seen.append("unload"))


class AlphaPlugin(RecordingPlugin):
    id = "alpha"
    name = "Alpha"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.register_commands([
            Command("alpha", "Alpha command", PermissionLevel.DEFAULT, lambda args: "a"),
        ])


class BetaPlugin(RecordingPlugin):
    id = "beta"
    name = "Beta"
    depends = ("alpha",)


class GammaPlugin(RecordingPlugin):
    id = "gamma"
    name = "Gamma"
    depends = ("beta",)


class LoopOnePlugin(RecordingPlugin):
    id = "loopone"
    name = "Loop one"
    depends = ("looptwo",)


class LoopTwoPlugin(RecordingPlugin):
    id = "looptwo"
    name = "Loop two"
    depends = ("loopone",)


class OrphanPlugin(RecordingPlugin):
    id = "orphan"
    name = "Orphan"
    depends = ("nowhere",)


class ClashPlugin(RecordingPlugin):
    id = "clash"
    name = "Clash"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.register_commands([
            Command("alpha", "Same name as alpha's command", PermissionLevel.DEFAULT, lambda args: "c"),
        ])


class BrokenPlugin(RecordingPlugin):
    id = "broken"
    name = "Broken"

    def __init__(self, ctx):
        super().__init__(ctx)
        raise RuntimeError("cannot start")


class NeedsBrokenPlugin(RecordingPlugin):
    id = "needsbroken"
    name = "Needs broken"
    depends = ("broken",)


class StoragePlugin(RecordingPlugin):
    id = "storage"
    name = "Storage"
    database = True


class GreeterConfig(BaseModel):
    greeting: str


class GreeterPlugin(RecordingPlugin):
    id = "greeter"
    name = "Greeter"
    config_schema = GreeterConfig

    def __init__(self, ctx):
        super().__init__(ctx)
        self.changes = []
        ctx.config.on_change(self.changes.append)


class FlakyPlugin(RecordingPlugin):
    id = "flaky"
    name = "Flaky"

    def __init__(self, ctx):
        super().__init__(ctx)
        ctx.config.on_change(self.on_config_change)

    def on_config_change(self, config):
        raise RuntimeError("cannot apply config")


class WatcherPlugin(RecordingPlugin):
    id = "watcher"
    name = "Watcher"
    depends = ("flaky",)

    def __init__(self, ctx):
        super().__init__(ctx)
        self.changes = []
        ctx.config.on_change(self.changes.append)


ALL_PLUGINS = [
    AlphaPlugin, BetaPlugin, GammaPlugin, LoopOnePlugin, LoopTwoPlugin, OrphanPlugin,
    ClashPlugin, BrokenPlugin, NeedsBrokenPlugin, StoragePlugin, GreeterPlugin,
    FlakyPlugin, WatcherPlugin,
]


@pytest.fixture
def router(store, transport):
    return CommandRouter(store, transport)


@pytest.fixture
def manager(store, router, tmp_path):
    return PluginManager(store, router, storage_dir=tmp_path / "plugins", sources=ALL_PLUGINS)


class TestDiscovery:
    """Tests for PluginDiscovery."""

    def test_discovers_classes(self):
        """Plugin classes are described without being instantiated."""
        descriptors = PluginDiscovery([AlphaPlugin, BetaPlugin]).discover_all()
        assert set(descriptors) == {"alpha", "beta"}
        assert descriptors["beta"].depends == ("alpha",)
        assert descriptors["alpha"].plugin_class is AlphaPlugin

    def test_duplicate_ids_rejected(self):
        """Two sources with the same id fail discovery."""
        class OtherAlpha(Plugin):
            id = "alpha"
            name = "Other alpha"

        with pytest.raises(DuplicateIdentifierError):
            PluginDiscovery([AlphaPlugin, OtherAlpha]).discover_all()

    def test_invalid_id_skipped(self):
        """A plugin with an invalid id is skipped."""
        class BadId(Plugin):
            id = "Bad-Id"
            name = "Bad"

        assert PluginDiscovery([BadId]).discover_all() == {}

    def test_module_source(self):
        """A dotted module path is resolved through PLUGIN_CLASS."""
        descriptors = PluginDiscovery(["plugins.bundled.reactor.plugin"]).discover_all()
        assert "reactor" in descriptors
        assert descriptors["reactor"].source == "plugins.bundled.reactor.plugin"

    def test_unimportable_module_skipped(self):
        """A module that cannot be imported is skipped."""
        assert PluginDiscovery(["no.such.module"]).discover_all() == {}


class TestLoadOrder:
    """Tests for dependency ordering."""

    def test_dependencies_first(self):
        """Dependencies come before their dependents."""
        descriptors = PluginDiscovery([AlphaPlugin, BetaPlugin, GammaPlugin]).discover_all()
        assert resolve_load_order(["gamma"], descriptors) == ["alpha", "beta", "gamma"]

    def test_cycle(self):
        """A dependency cycle is reported."""
        descriptors = PluginDiscovery([LoopOnePlugin, LoopTwoPlugin]).discover_all()
        with pytest.raises(DependencyError, match="Circular"):
            resolve_load_order(["loopone"], descriptors)

    def test_missing_dependency(self):
        """A dependency on an undiscovered plugin is reported."""
        descriptors = PluginDiscovery([OrphanPlugin]).discover_all()
        with pytest.raises(DependencyError, match="nowhere"):
            resolve_load_order(["orphan"], descriptors)


class TestPluginManager:
    """Tests for PluginManager."""

    @pytest.mark.asyncio
    async def test_load_all_in_dependency_order(self, manager):
        """Plugins are constructed in dependency order with their dependencies injected."""
        loaded = await manager.load_all(["gamma"])

        assert loaded == ["alpha", "beta", "gamma"]
        assert constructed == ["alpha", "beta", "gamma"]
        assert manager.load_order == ["alpha", "beta", "gamma"]
        assert manager.get_plugin("gamma").dependencies["beta"] is manager.get_plugin("beta")
        assert manager.get_plugin("alpha").seen == ["load"]

    @pytest.mark.asyncio
    async def test_load_all_uses_enabled_plugins(self, manager, store):
        """Without ids, the config's enabled plugins are loaded and unknown ones skipped."""
        await store.update({"plugins": ["alpha", "missing"]})
        loaded = await manager.load_all()
        assert loaded == ["alpha"]

    @pytest.mark.asyncio
    async def test_cycle_fails_before_instantiation(self, manager):
        """A cycle aborts loading before any plugin is constructed."""
        with pytest.raises(DependencyError):
            await manager.load_all(["alpha", "loopone"])
        assert constructed == []

    @pytest.mark.asyncio
    async def test_missing_dependency_fails_before_instantiation(self, manager):
        """A missing dependency aborts loading before any plugin is constructed."""
        with pytest.raises(DependencyError):
            await manager.load_all(["alpha", "orphan"])
        assert constructed == []

    @pytest.mark.asyncio
    async def test_duplicate_command_isolated(self, manager, router):
        """A plugin whose command name is taken fails alone."""
        loaded = await manager.load_all(["alpha", "clash", "beta"])

        assert loaded == ["alpha", "beta"]
        record = manager.registry.get("clash")
        assert record.state == PluginState.ERROR
        assert "alpha" in record.error
        assert router.commands.get("alpha").plugin_id == "alpha"

    @pytest.mark.asyncio
    async def test_failing_plugin_skips_dependents(self, manager):
        """A failing plugin's dependents are skipped, unrelated plugins still load."""
        loaded = await manager.load_all(["needsbroken", "alpha"])

        assert loaded == ["alpha"]
        assert manager.registry.get("broken").state == PluginState.ERROR
        assert manager.registry.get("needsbroken").state == PluginState.ERROR
        assert "needsbroken" not in constructed

    @pytest.mark.asyncio
    async def test_storage_is_lazy_and_opt_in(self, manager, tmp_path):
        """Storage exists only for database plugins and opens on first access."""
        await manager.load_all(["alpha", "storage"])

        assert manager.get_plugin("alpha").db is None

        plugin = manager.get_plugin("storage")
        db_file = tmp_path / "plugins" / "storage.sqlite"
        assert not db_file.exists()
        plugin.db.execute("CREATE TABLE kv (k TEXT, v TEXT)")
        assert db_file.exists()

    @pytest.mark.asyncio
    async def test_unload_takes_dependents_down_first(self, manager, router):
        """Unloading a plugin unloads its dependents first."""
        await manager.load_all(["gamma"])
        alpha = manager.get_plugin("alpha")

        unloaded = await manager.unload("alpha")

        assert unloaded == ["gamma", "beta", "alpha"]
        assert manager.load_order == []
        assert alpha.seen == ["load", "unload"]
        assert "alpha" not in router.commands
        assert manager.registry.get("alpha").state == PluginState.UNLOADED
        assert await manager.unload("alpha") == []

    @pytest.mark.asyncio
    async def test_reload_replaces_instance_and_dependents(self, manager):
        """Reloading a plugin rebuilds it and its dependents."""
        await manager.load_all(["gamma"])
        old_alpha = manager.get_plugin("alpha")
        old_gamma = manager.get_plugin("gamma")

        record = await manager.load("alpha")

        assert record.state == PluginState.LOADED
        assert manager.get_plugin("alpha") is not old_alpha
        assert manager.get_plugin("gamma") is not old_gamma
        assert manager.load_order == ["alpha", "beta", "gamma"]
        assert manager.get_plugin("beta").dependencies["alpha"] is manager.get_plugin("alpha")

    @pytest.mark.asyncio
    async def test_load_unknown_plugin(self, manager):
        """Loading an undiscovered plugin fails."""
        manager.discover()
        with pytest.raises(PluginLoadError):
            await manager.load("nothing")

    @pytest.mark.asyncio
    async def test_load_without_dependencies(self, manager):
        """Loading a plugin whose dependencies are not loaded fails."""
        manager.discover()
        with pytest.raises(DependencyError):
            await manager.load("beta")

    @pytest.mark.asyncio
    async def test_plugin_config_view(self, manager, store):
        """The scoped config parses the partition and reports only its own changes."""
        await store.update({"plugins_config": {"greeter": {"greeting": "hi"}}})
        await manager.load_all(["greeter"])
        plugin = manager.get_plugin("greeter")

        assert plugin.config.greeting == "hi"

        await store.update({"port": 4000})
        assert plugin.changes == []

        await plugin.ctx.config.update({"greeting": "hello"})
        assert [c.greeting for c in plugin.changes] == ["hello"]

    @pytest.mark.asyncio
    async def test_incompatible_config_fails_plugin(self, manager, store):
        """A partition that does not fit the schema fails only that plugin."""
        await store.update({"plugins_config": {"greeter": {"wrong": 1}}})
        await manager.load_all(["greeter", "alpha"])

        assert manager.registry.get("greeter").state == PluginState.ERROR
        assert store.plugin_schema("greeter") is None
        assert manager.is_loaded("alpha")

    @pytest.mark.asyncio
    async def test_unload_removes_schema_and_listeners(self, manager, store):
        """Unload drops the schema and the config listeners."""
        await store.update({"plugins_config": {"greeter": {"greeting": "hi"}}})
        await manager.load_all(["greeter"])
        plugin = manager.get_plugin("greeter")

        await manager.unload("greeter")

        assert store.plugin_schema("greeter") is None
        await store.update({"plugins_config": {"greeter": {"greeting": "bye"}}})
        assert plugin.changes == []

    @pytest.mark.asyncio
    async def test_failing_config_listener_does_not_starve_other_plugins(self, manager, store):
        """A plugin whose config listener raises must not hide the update from plugins loaded after it."""
        await manager.load_all(["watcher"])
        assert manager.load_order == ["flaky", "watcher"]

        await store.update({"plugins_config": {"flaky": {"a": 1}, "watcher": {"b": 2}}})

        assert manager.get_plugin("watcher").changes == [{"b": 2}]
        assert manager.is_loaded("flaky")
