"""Unit tests for plugins (templategen.engine.plugins).

Tests cover:
- Plugin.from_object with modules, mappings and camelCase hook names
- registration rules (name required, no duplicates), unregister / clear
- filters and partials installed into attached renderers
- sync and async lifecycle hooks, transforms, error wrapping
- load_plugin from files and module names
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from templategen.engine.plugins import Plugin, PluginHook, PluginManager, load_plugin
from templategen.engine.renderer import TemplateRenderer
from templategen.errors import PluginError


@pytest.fixture
def manager() -> PluginManager:
    return PluginManager()


# ---------------------------------------------------------------------------
# Plugin objects
# ---------------------------------------------------------------------------


class TestPluginFromObject:
    @pytest.mark.unit
    def test_attribute_holder(self):
        obj = SimpleNamespace(
            name="dates",
            version="1.0.0",
            helpers={"double": lambda n: n * 2, "bogus": "not callable"},
            partials={"footer": "-- end --", "bad": 3},
            onBeforeGenerate=lambda model: None,
            transform_model=lambda model: model,
        )
        plugin = Plugin.from_object(obj)
        assert plugin.name == "dates"
        assert plugin.version == "1.0.0"
        assert list(plugin.filters) == ["double"]
        assert plugin.partials == {"footer": "-- end --"}
        assert set(plugin.hooks) == {PluginHook.BEFORE_GENERATE, PluginHook.TRANSFORM_MODEL}

    @pytest.mark.unit
    def test_mapping(self):
        plugin = Plugin.from_object({"name": "m", "filters": {"up": str.upper}})
        assert plugin.name == "m"
        assert plugin.filters["up"]("a") == "A"

    @pytest.mark.unit
    def test_plugin_passes_through(self):
        plugin = Plugin("same")
        assert Plugin.from_object(plugin) is plugin

    @pytest.mark.unit
    def test_default_name(self):
        assert Plugin.from_object(SimpleNamespace(), name="fallback").name == "fallback"


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    @pytest.mark.unit
    def test_register_and_query(self, manager):
        plugin = manager.register(Plugin("a", version="2.0"))
        manager.register({"name": "b"})
        assert manager.plugins == ["a", "b"]
        assert len(manager) == 2
        assert "a" in manager
        assert manager.get("a") is plugin
        assert manager.get("missing") is None

    @pytest.mark.unit
    @pytest.mark.parametrize("plugin", [None, {}, Plugin("")])
    def test_name_required(self, manager, plugin):
        with pytest.raises(PluginError, match="must have a name"):
            manager.register(plugin)

    @pytest.mark.unit
    def test_duplicate_rejected(self, manager):
        manager.register(Plugin("dup"))
        with pytest.raises(PluginError, match='"dup" is already registered') as exc_info:
            manager.register(Plugin("dup"))
        assert exc_info.value.plugin_name == "dup"
        assert exc_info.value.code == "PLUGIN_ERROR"

    @pytest.mark.unit
    def test_unregister_removes_hooks(self, manager):
        calls: list[str] = []
        manager.register(Plugin("h", hooks={PluginHook.BEFORE_GENERATE: calls.append}))
        assert manager.unregister("h") is True
        assert manager.unregister("h") is False
        manager.run_hooks(PluginHook.BEFORE_GENERATE, "model")
        assert calls == []

    @pytest.mark.unit
    def test_clear(self, manager):
        calls: list[str] = []
        manager.register(Plugin("one", hooks={PluginHook.BEFORE_GENERATE: calls.append}))
        manager.register(Plugin("two"))
        manager.clear()
        manager.run_hooks(PluginHook.BEFORE_GENERATE, "model")
        assert len(manager) == 0
        assert calls == []


class TestRendererInstall:
    @pytest.mark.unit
    def test_filters_reach_attached_renderer(self):
        renderer = TemplateRenderer()
        manager = PluginManager([renderer])
        manager.register(Plugin("math", filters={"double": lambda n: n * 2}))
        assert renderer.render_string("{{ 5 | double }}/{{ double(4) }}", {}) == "10/8"

    @pytest.mark.unit
    def test_attach_installs_existing_plugins(self, manager):
        manager.register(Plugin("p", partials={"footer": "<{{ text }}>"}))
        renderer = TemplateRenderer()
        manager.attach(renderer)
        manager.attach(renderer)
        assert renderer.render_string('{% include "footer" %}', {"text": "hello"}) == "<hello>"


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


class TestHooks:
    @pytest.mark.unit
    def test_lifecycle_hooks_in_registration_order(self, manager):
        order: list[str] = []
        manager.register(Plugin("one", hooks={PluginHook.AFTER_GENERATE: lambda o: order.append("one")}))
        manager.register(Plugin("two", hooks={PluginHook.AFTER_GENERATE: lambda o: order.append("two")}))
        manager.run_hooks("on_after_generate", [])
        assert order == ["one", "two"]

    @pytest.mark.unit
    def test_transform_chains(self, manager):
        manager.register(
            Plugin("t1", hooks={PluginHook.TRANSFORM_MODEL: lambda m: {**m, "extra1": True}})
        )
        manager.register(
            Plugin("t2", hooks={PluginHook.TRANSFORM_MODEL: lambda m: {**m, "extra2": True}})
        )
        result = manager.transform(PluginHook.TRANSFORM_MODEL, {"original": True})
        assert result == {"original": True, "extra1": True, "extra2": True}

    @pytest.mark.unit
    def test_transform_without_handlers_returns_input(self, manager):
        data = {"unchanged": True}
        assert manager.transform(PluginHook.TRANSFORM_RESULT, data) is data

    @pytest.mark.unit
    def test_transform_requires_transform_hook(self, manager):
        with pytest.raises(ValueError):
            manager.transform(PluginHook.BEFORE_WRITE, [])

    @pytest.mark.unit
    def test_unknown_hook_name(self, manager):
        with pytest.raises(ValueError):
            manager.run_hooks("on_everything")

    @pytest.mark.unit
    def test_failing_hook_wrapped(self, manager):
        def explode(model):
            raise RuntimeError("boom")

        manager.register(Plugin("bad", hooks={PluginHook.BEFORE_GENERATE: explode}))
        with pytest.raises(PluginError) as exc_info:
            manager.run_hooks(PluginHook.BEFORE_GENERATE, {})
        assert exc_info.value.plugin_name == "bad"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert "Plugin: bad" in exc_info.value.to_detailed_string()

    @pytest.mark.unit
    def test_async_hook_rejected_in_sync_run(self, manager):
        async def later(model):
            return None

        manager.register(Plugin("async", hooks={PluginHook.BEFORE_GENERATE: later}))
        with pytest.raises(PluginError, match="asynchronous"):
            manager.run_hooks(PluginHook.BEFORE_GENERATE, {})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_hooks_awaited_in_order(self, manager):
        order: list[int] = []

        async def first(model):
            order.append(1)

        def second(model):
            order.append(2)

        manager.register(Plugin("a1", hooks={PluginHook.BEFORE_GENERATE: first}))
        manager.register(Plugin("a2", hooks={PluginHook.BEFORE_GENERATE: second}))
        await manager.run_hooks_async(PluginHook.BEFORE_GENERATE, {})
        assert order == [1, 2]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_hook_failure_wrapped(self, manager):
        async def explode(model):
            raise RuntimeError("late boom")

        manager.register(Plugin("bad", hooks={PluginHook.AFTER_WRITE: explode}))
        with pytest.raises(PluginError, match="late boom"):
            await manager.run_hooks_async(PluginHook.AFTER_WRITE, [])


# ---------------------------------------------------------------------------
# load_plugin
# ---------------------------------------------------------------------------


class TestLoadPlugin:
    @pytest.mark.unit
    def test_module_level_definitions(self, tmp_path: Path):
        path = tmp_path / "banner.py"
        path.write_text(
            "filters = {'banner': lambda v: '** ' + str(v) + ' **'}\n"
            "def transformModel(model):\n"
            "    return dict(model, Bannered=True)\n",
            encoding="utf-8",
        )
        plugin = load_plugin(path)
        assert plugin.name == "banner"
        assert plugin.filters["banner"]("x") == "** x **"
        assert PluginHook.TRANSFORM_MODEL in plugin.hooks

    @pytest.mark.unit
    def test_plugin_attribute_and_relative_base(self, tmp_path: Path):
        (tmp_path / "named.py").write_text(
            "from templategen.engine.plugins import Plugin\n"
            "plugin = Plugin('custom-name', partials={'p': 'partial'})\n",
            encoding="utf-8",
        )
        plugin = load_plugin("named.py", base=tmp_path)
        assert plugin.name == "custom-name"
        assert plugin.partials == {"p": "partial"}

    @pytest.mark.unit
    def test_importable_module_name(self):
        plugin = load_plugin("string")
        assert plugin.name == "string"
        assert plugin.hooks == {}

    @pytest.mark.unit
    def test_import_failure(self, tmp_path: Path):
        with pytest.raises(PluginError, match="Failed to import plugin"):
            load_plugin(tmp_path / "missing.py")
        with pytest.raises(PluginError):
            load_plugin("templategen_no_such_module")
