"""Script hooks that transform the model during generation.

A template may ship a ``<name>.hbs.py`` module defining any of::

    def prepare_model(model): ...
    def prepare_target(target): ...
    def prepare_item(item): ...
    def prepare_item_model(item_model): ...

(camelCase names such as ``prepareModel`` are accepted too).  Missing hooks
pass their input through unchanged, even when it is ``None``.  A hook that
is present signals that generation cannot proceed by returning
:class:`Abort`; returning ``None`` means the same.

Only the loader imports hook modules.  The pipeline receives a ready
:class:`ScriptHooks` object.
"""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from ..errors import HookAbortedError, TemplateLoadError

HookFn = Callable[[Any], Any]

HOOK_STAGES: dict[str, str] = {
    "prepare_model": "prepareModel",
    "prepare_target": "prepareTarget",
    "prepare_item": "prepareItem",
    "prepare_item_model": "prepareItemModel",
}


@dataclass(frozen=True)
class Abort:
    """Hook result meaning "stop this generate call"."""

    reason: str = "hook returned no value"


class ScriptHooks:
    """The four hook functions of one template."""

    def __init__(
        self,
        prepare_model: HookFn | None = None,
        prepare_target: HookFn | None = None,
        prepare_item: HookFn | None = None,
        prepare_item_model: HookFn | None = None,
    ) -> None:
        self.prepare_model = prepare_model
        self.prepare_target = prepare_target
        self.prepare_item = prepare_item
        self.prepare_item_model = prepare_item_model

    @classmethod
    def from_module(cls, module: ModuleType | Any) -> "ScriptHooks":
        """Collect hook functions from a module or any attribute holder."""
        hooks: dict[str, HookFn] = {}
        for stage, legacy_name in HOOK_STAGES.items():
            fn = getattr(module, stage, None) or getattr(module, legacy_name, None)
            if fn is not None:
                if not callable(fn):
                    raise TypeError(f"Hook '{stage}' is not callable")
                hooks[stage] = fn
        return cls(**hooks)

    def get(self, stage: str) -> HookFn | None:
        if stage not in HOOK_STAGES:
            raise KeyError(f"Unknown hook stage: {stage}")
        return getattr(self, stage)


class ScriptHookRunner:
    """Invokes hooks and turns abort results into ``HookAbortedError``."""

    def __init__(self, hooks: ScriptHooks | None = None, template: str | None = None) -> None:
        self.hooks = hooks or ScriptHooks()
        self.template = template

    def run(self, stage: str, value: Any) -> Any:
        hook = self.hooks.get(stage)
        if hook is None:
            return value
        result = hook(value)
        if result is None:
            raise HookAbortedError(
                stage, f"{stage} did not return a value", template=self.template
            )
        if isinstance(result, Abort):
            raise HookAbortedError(stage, result.reason, template=self.template)
        return result


def import_source_file(path: str | Path, prefix: str) -> ModuleType:
    """Execute a Python file as a fresh module named after its absolute path."""
    file_path = Path(path)
    module_name = prefix + "".join(c if c.isalnum() else "_" for c in str(file_path.resolve()))
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import {file_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def load_hook_module(path: str | Path) -> ScriptHooks:
    """Import a ``*.hbs.py`` file and build hooks from it."""
    file_path = Path(path)
    try:
        module = import_source_file(file_path, "templategen_hooks_")
    except Exception as exc:
        raise TemplateLoadError(
            f"Hook module failed to import: {exc}", file=str(file_path), cause=exc
        ) from exc
    return ScriptHooks.from_module(module)
