"""Plugins that extend rendering and take part in batch generation.

A plugin is a named bundle of any of:

* ``filters``: functions exposed to templates as filters and globals;
* ``partials``: template text usable with ``{% include "<name>" %}``;
* hooks, run by :class:`~templategen.engine.loader.TemplateLoader`:

  ===============================  ==========================================
  ``transform_model(model)``       returns the model every template receives
  ``on_before_generate(model)``    before the first template runs
  ``transform_result(result)``     returns the ``GenerationResult`` to keep
  ``on_before_write(results)``     before one template's files are written
  ``on_after_write(paths)``        after they have been written
  ``on_after_generate(outcomes)``  after the last template
  ===============================  ==========================================

Handlers run in plugin registration order.  ``on_*`` hooks may be coroutine
functions when generation runs through ``generate_async``.  Transform hooks
are always synchronous.  A handler that raises is reported as a
:class:`~templategen.errors.PluginError`.  Failures in ``transform_model``
and the two ``*_generate`` hooks end the batch.  The other hooks run inside
one template's step, so ``continue_on_error`` applies to them.

Example:
    >>> manager = PluginManager()
    >>> manager.register(Plugin("shout", filters={"shout": lambda v: f"{v}!"}))
    >>> loader = TemplateLoader("./templates", plugins=manager)
"""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any, Callable, Iterable

from ..errors import PluginError
from .hooks import import_source_file
from .renderer import TemplateRenderer


class PluginHook(str, Enum):
    TRANSFORM_MODEL = "transform_model"
    BEFORE_GENERATE = "on_before_generate"
    TRANSFORM_RESULT = "transform_result"
    BEFORE_WRITE = "on_before_write"
    AFTER_WRITE = "on_after_write"
    AFTER_GENERATE = "on_after_generate"


TRANSFORM_HOOKS = frozenset({PluginHook.TRANSFORM_MODEL, PluginHook.TRANSFORM_RESULT})

# camelCase spellings accepted on plugin objects and modules.
_CAMEL_NAMES: dict[PluginHook, str] = {
    PluginHook.TRANSFORM_MODEL: "transformModel",
    PluginHook.BEFORE_GENERATE: "onBeforeGenerate",
    PluginHook.TRANSFORM_RESULT: "transformResult",
    PluginHook.BEFORE_WRITE: "onBeforeWrite",
    PluginHook.AFTER_WRITE: "onAfterWrite",
    PluginHook.AFTER_GENERATE: "onAfterGenerate",
}


# ---------------------------------------------------------------------------
# Plugin
# ---------------------------------------------------------------------------


@dataclass
class Plugin:
    """A named set of filters, partials and hooks."""

    name: str
    version: str | None = None
    filters: dict[str, Callable[..., Any]] = field(default_factory=dict)
    partials: dict[str, str] = field(default_factory=dict)
    hooks: dict[PluginHook, Callable[..., Any]] = field(default_factory=dict)

    @classmethod
    def from_object(cls, obj: Any, name: str | None = None) -> "Plugin":
        """Build a plugin from a module or any attribute holder.

        Mappings are read by key.  ``helpers`` is accepted as another name
        for ``filters``.  Entries that are not callables (filters, hooks) or
        strings (partials) are ignored.
        """
        if isinstance(obj, Plugin):
            return obj
        if isinstance(obj, Mapping):
            obj = SimpleNamespace(**obj)
        filters = getattr(obj, "filters", None) or getattr(obj, "helpers", None) or {}
        partials = getattr(obj, "partials", None) or {}
        hooks: dict[PluginHook, Callable[..., Any]] = {}
        for hook in PluginHook:
            fn = getattr(obj, hook.value, None) or getattr(obj, _CAMEL_NAMES[hook], None)
            if callable(fn):
                hooks[hook] = fn
        return cls(
            name=getattr(obj, "name", None) or name or "",
            version=getattr(obj, "version", None),
            filters={k: v for k, v in dict(filters).items() if callable(v)},
            partials={k: v for k, v in dict(partials).items() if isinstance(v, str)},
            hooks=hooks,
        )


def load_plugin(reference: str | Path, base: str | Path | None = None) -> Plugin:
    """Import a plugin from a ``.py`` file or an importable module name.

    A module may define a ``plugin`` attribute (a :class:`Plugin` or any
    attribute holder); otherwise the module itself is read, and its name
    defaults to the file stem or module name.  Relative file paths are
    resolved against *base*.

    Raises:
        PluginError: The module cannot be imported.
    """
    text = str(reference)
    try:
        if text.endswith(".py"):
            path = Path(text)
            if not path.is_absolute() and base is not None:
                path = Path(base) / path
            module: ModuleType = import_source_file(path, "templategen_plugin_")
            default_name = path.stem
        else:
            module = importlib.import_module(text)
            default_name = text
    except Exception as exc:
        raise PluginError(
            f"Failed to import plugin {text!r}: {exc}", file=text, cause=exc
        ) from exc

    source = getattr(module, "plugin", None) or module
    return Plugin.from_object(source, name=default_name)


# ---------------------------------------------------------------------------
# PluginManager
# ---------------------------------------------------------------------------


class PluginManager:
    """Registry of plugins and their hooks.

    Renderers passed in (or attached later) receive the filters and partials
    of every plugin, including plugins registered afterwards.  Register
    plugins before templates are loaded so their filters exist at compile
    time.
    """

    def __init__(self, renderers: Iterable[TemplateRenderer] = ()) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._renderers: list[TemplateRenderer] = []
        for renderer in renderers:
            self.attach(renderer)

    @property
    def plugins(self) -> list[str]:
        """Registered plugin names in registration order."""
        return list(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __repr__(self) -> str:
        return f"<PluginManager plugins={self.plugins}>"

    # -- Registration --------------------------------------------------------

    def attach(self, renderer: TemplateRenderer) -> None:
        """Install every registered plugin into *renderer*, now and later."""
        if any(existing is renderer for existing in self._renderers):
            return
        self._renderers.append(renderer)
        for plugin in self._plugins.values():
            self._install(plugin, renderer)

    def register(self, plugin: Plugin | Any) -> Plugin:
        """Register *plugin* (a :class:`Plugin` or an attribute holder).

        Raises:
            PluginError: The plugin has no name or the name is taken.
        """
        if plugin is None:
            raise PluginError("Plugin must have a name")
        plugin = Plugin.from_object(plugin)
        if not plugin.name:
            raise PluginError("Plugin must have a name")
        if plugin.name in self._plugins:
            raise PluginError(
                f'Plugin "{plugin.name}" is already registered', plugin_name=plugin.name
            )
        for renderer in self._renderers:
            self._install(plugin, renderer)
        self._plugins[plugin.name] = plugin
        return plugin

    def unregister(self, name: str) -> bool:
        """Remove a plugin's hooks.

        Filters and partials already installed into a renderer stay there,
        since compiled templates may refer to them.
        """
        return self._plugins.pop(name, None) is not None

    def get(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def clear(self) -> None:
        self._plugins.clear()

    @staticmethod
    def _install(plugin: Plugin, renderer: TemplateRenderer) -> None:
        for filter_name, fn in plugin.filters.items():
            renderer.register_filter(filter_name, fn)
        for partial_name, text in plugin.partials.items():
            renderer.register_partial(partial_name, text)

    # -- Hooks ---------------------------------------------------------------

    def handlers(self, hook: PluginHook | str) -> list[tuple[str, Callable[..., Any]]]:
        """``(plugin name, handler)`` pairs for *hook*, in registration order."""
        hook = PluginHook(hook)
        return [
            (plugin.name, plugin.hooks[hook])
            for plugin in self._plugins.values()
            if hook in plugin.hooks
        ]

    def has_handlers(self, hook: PluginHook | str) -> bool:
        return bool(self.handlers(hook))

    def run_hooks(self, hook: PluginHook | str, *args: Any) -> None:
        """Call every ``on_*`` handler for *hook* synchronously."""
        hook = PluginHook(hook)
        for plugin_name, handler in self.handlers(hook):
            result = self._call(plugin_name, hook, handler, *args)
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise PluginError(
                    f"Plugin hook '{hook.value}' is asynchronous; use generate_async",
                    plugin_name=plugin_name,
                )

    async def run_hooks_async(self, hook: PluginHook | str, *args: Any) -> None:
        """Call every ``on_*`` handler for *hook*, awaiting coroutine results."""
        hook = PluginHook(hook)
        for plugin_name, handler in self.handlers(hook):
            result = self._call(plugin_name, hook, handler, *args)
            if inspect.isawaitable(result):
                try:
                    await result
                except Exception as exc:
                    raise self._hook_failed(plugin_name, hook, exc) from exc

    def transform(self, hook: PluginHook | str, data: Any) -> Any:
        """Pass *data* through every handler for a transform hook."""
        hook = PluginHook(hook)
        if hook not in TRANSFORM_HOOKS:
            raise ValueError(f"{hook.value} is not a transform hook")
        for plugin_name, handler in self.handlers(hook):
            data = self._call(plugin_name, hook, handler, data)
        return data

    def _call(
        self, plugin_name: str, hook: PluginHook, handler: Callable[..., Any], *args: Any
    ) -> Any:
        try:
            return handler(*args)
        except PluginError:
            raise
        except Exception as exc:
            raise self._hook_failed(plugin_name, hook, exc) from exc

    @staticmethod
    def _hook_failed(plugin_name: str, hook: PluginHook, exc: Exception) -> PluginError:
        return PluginError(
            f"Plugin hook '{hook.value}' failed: {exc}", plugin_name=plugin_name, cause=exc
        )
