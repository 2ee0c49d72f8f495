"""Export path resolution.

Two strategies turn a template's ``ExportPath`` into a concrete file path:

* **replace**: literal substitution of ``{FileName}`` and
  ``{<TargetItem>.<TargetItemNameProperty>}`` (e.g. ``{item.Name}``);
* **template**: the path is rendered as a template against the context,
  with ``FileName`` available when a split section supplied one.

Replace runs first so the template pass can finish whatever it left behind.
Slashes are not normalised here; that happens when the file is written.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..errors import SettingsError
from .renderer import TemplateRenderer, default_renderer
from .settings import TemplateSettings

FILE_NAME_KEY = "FileName"
FILE_NAME_PLACEHOLDER = "{FileName}"


def _replace_placeholder(text: str, placeholder: str, value: str) -> str:
    # Single-brace placeholders only; "{{FileName}}" belongs to the template pass.
    pattern = rf"(?<!\{{){re.escape(placeholder)}(?!\}})"
    return re.sub(pattern, lambda _match: value, text)


def _item_name(settings: TemplateSettings, model: Any) -> Any:
    if not isinstance(model, Mapping):
        return None
    name_property = settings.target_item_name_property
    item = model.get(settings.target_item)
    if isinstance(item, Mapping) and item.get(name_property):
        return item[name_property]
    return model.get(name_property)


def resolve_export_path(
    settings: TemplateSettings,
    file_name: str | None,
    model: Any,
    renderer: TemplateRenderer | None = None,
) -> str:
    """Expand ``settings.export_path`` for *model* and an optional file name."""
    if not settings.export_path:
        raise SettingsError("ExportPath is not configured")

    export_path = settings.export_path

    if settings.prepare_export_path_using_replace:
        if file_name:
            export_path = _replace_placeholder(export_path, FILE_NAME_PLACEHOLDER, file_name)
        name = _item_name(settings, model)
        if name:
            placeholder = f"{{{settings.target_item}.{settings.target_item_name_property}}}"
            export_path = _replace_placeholder(export_path, placeholder, str(name))

    if settings.prepare_export_path_using_template:
        context: Any = model if model is not None else {}
        if file_name:
            if isinstance(context, Mapping):
                context = {**context, FILE_NAME_KEY: file_name}
            else:
                context = {"this": context, FILE_NAME_KEY: file_name}
        renderer = renderer or default_renderer()
        export_path = renderer.render_string(export_path, context)

    return export_path


class PathResolver:
    """Binds a renderer to :func:`resolve_export_path`."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or default_renderer()

    def resolve(self, settings: TemplateSettings, file_name: str | None, model: Any) -> str:
        return resolve_export_path(settings, file_name, model, self.renderer)
