"""A template loaded from its file trio.

Given a base name ``N`` in a directory, three files make up one template:

* ``N.hbs``: the template body;
* ``N.hbs.settings.json``: PascalCase settings (see ``TemplateSettings``);
* ``N.hbs.py``: optional script hooks.

Loading never raises.  Failures are recorded in :attr:`Template.errors`
and leave the template unusable (``is_loaded`` is ``False``).
"""

from __future__ import annotations

import re
from pathlib import Path

from ..errors import GeneratorError
from .hooks import ScriptHooks, load_hook_module
from .renderer import CompiledTemplate, TemplateRenderer, default_renderer
from .results import ErrorRecord
from .settings import TemplateSettings
from .splitter import FILE_NAME_GROUP, compile_file_name_pattern

TEMPLATE_SUFFIX = ".hbs"
SETTINGS_SUFFIX = ".hbs.settings.json"
HOOKS_SUFFIX = ".hbs.py"


def template_name_from_file(file_name: str) -> str | None:
    """Base name shared by the trio, or ``None`` for unrelated files."""
    for suffix in (SETTINGS_SUFFIX, HOOKS_SUFFIX, TEMPLATE_SUFFIX):
        if file_name.lower().endswith(suffix) and len(file_name) > len(suffix):
            return file_name[: -len(suffix)]
    return None


class Template:
    """An immutable, loaded template unit."""

    def __init__(
        self,
        name: str,
        directory: str | Path,
        *,
        content: str | None = None,
        settings: TemplateSettings | None = None,
        compiled: CompiledTemplate | None = None,
        hooks: ScriptHooks | None = None,
        errors: list[ErrorRecord] | None = None,
    ) -> None:
        self.name = name
        self.directory = Path(directory)
        self.content = content
        self.settings = settings
        self.compiled = compiled
        self.hooks = hooks
        self.errors: list[ErrorRecord] = list(errors or [])

    # -- Paths ---------------------------------------------------------------

    @property
    def template_path(self) -> Path:
        return self.directory / f"{self.name}{TEMPLATE_SUFFIX}"

    @property
    def settings_path(self) -> Path:
        return self.directory / f"{self.name}{SETTINGS_SUFFIX}"

    @property
    def hooks_path(self) -> Path:
        return self.directory / f"{self.name}{HOOKS_SUFFIX}"

    # -- State ---------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return (
            not self.errors
            and self.compiled is not None
            and self.settings is not None
        )

    def __repr__(self) -> str:
        state = "loaded" if self.is_loaded else "not loaded"
        return f"<Template {self.name!r} ({state})>"

    # -- Loading -------------------------------------------------------------

    @classmethod
    def load(
        cls,
        directory: str | Path,
        file_name: str,
        renderer: TemplateRenderer | None = None,
    ) -> "Template":
        """Read the trio that *file_name* belongs to."""
        directory = Path(directory)
        name = template_name_from_file(file_name)
        if name is None:
            return cls(
                file_name,
                directory,
                errors=[
                    ErrorRecord(
                        phase="load",
                        message=f'"{file_name}" is not a template or settings file',
                        file=str(directory / file_name),
                    )
                ],
            )

        template = cls(name, directory)
        renderer = renderer or default_renderer()
        try:
            content = template.template_path.read_text(encoding="utf-8")
            settings = TemplateSettings.from_file(template.settings_path)
            hooks = (
                load_hook_module(template.hooks_path)
                if template.hooks_path.exists()
                else None
            )
            compiled = renderer.compile(
                content, name=name, file=str(template.template_path)
            )
        except (OSError, GeneratorError, TypeError, ValueError) as exc:
            template.errors.append(
                ErrorRecord(
                    phase="load",
                    message=f'Failed to load template "{name}": {exc}',
                    cause=exc,
                    template=name,
                    file=getattr(exc, "file", None) or getattr(exc, "filename", None),
                )
            )
            return template

        template.content = content
        template.settings = settings
        template.hooks = hooks
        template.compiled = compiled
        return template

    # -- Validation ----------------------------------------------------------

    def validate(self) -> tuple[bool, list[ErrorRecord]]:
        """Check a loaded template for problems that would surface at generate time."""
        if not self.is_loaded:
            return False, list(self.errors)

        problems: list[str] = []
        settings = self.settings
        assert settings is not None

        if not settings.export_path:
            problems.append("ExportPath is not configured")

        if settings.file_name_pattern:
            try:
                pattern = compile_file_name_pattern(settings.file_name_pattern)
            except re.error as exc:
                problems.append(f"FileNamePattern is not a valid regex: {exc}")
            else:
                if FILE_NAME_GROUP not in pattern.groupindex:
                    problems.append("FileNamePattern has no named group 'FileName'")
            if not settings.split_on:
                problems.append("FileNamePattern is set but SplitOn is not")

        errors = [
            ErrorRecord(phase="load", message=problem, template=self.name)
            for problem in problems
        ]
        return not errors, errors
