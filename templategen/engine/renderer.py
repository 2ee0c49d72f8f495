"""Jinja2 rendering service.

Wraps a single Jinja2 ``Environment`` with the custom filters and globals
from :mod:`templategen.engine.helpers`.  The environment is configured once
and lives for the rest of the process: filters registered through
:meth:`TemplateRenderer.register_filter` and partials registered through
:meth:`TemplateRenderer.register_partial` stay registered, and the pipeline
only ever calls :meth:`CompiledTemplate.render`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    Template,
    TemplateSyntaxError,
)

from ..errors import RenderError, TemplateCompileError
from .helpers import FILTERS, GLOBALS


# ---------------------------------------------------------------------------
# Compiled template
# ---------------------------------------------------------------------------


class CompiledTemplate:
    """A compiled template exposing ``render(context) -> str``."""

    def __init__(self, template: Template, name: str | None = None) -> None:
        self._template = template
        self.name = name

    def render(self, context: Any) -> str:
        """Render against *context*.

        Mappings are used as the template namespace directly; any other value
        is exposed as ``this``.  Engine failures are raised as ``RenderError``.
        """
        namespace = dict(context) if isinstance(context, Mapping) else {"this": context}
        try:
            return self._template.render(namespace)
        except Exception as exc:
            raise RenderError(
                f"Failed to render template: {exc}",
                template=self.name,
                line=getattr(exc, "lineno", None),
                cause=exc,
            ) from exc


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Compiles template text with the shared Jinja2 environment.

    *search_path* lists the template roots used to resolve
    ``{% include %}`` / ``{% import %}`` partials.  Registered partials are
    looked up first.
    """

    def __init__(self, search_path: str | Path | Sequence[str | Path] | None = None) -> None:
        self.partials: dict[str, str] = {}
        loaders: list[BaseLoader] = [DictLoader(self.partials)]
        if search_path is None:
            self.search_path: list[Path] = []
        else:
            if isinstance(search_path, (str, Path)):
                search_path = [search_path]
            self.search_path = [Path(p) for p in search_path]
            loaders.append(FileSystemLoader([str(p) for p in self.search_path]))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(FILTERS)
        self.env.globals.update(GLOBALS)

    def register_filter(self, name: str, fn: Callable[..., Any]) -> None:
        """Expose *fn* as both a filter and a global function."""
        self.env.filters[name] = fn
        self.env.globals[name] = fn

    def register_partial(self, name: str, text: str) -> None:
        """Make *text* available to ``{% include "<name>" %}``."""
        self.partials[name] = text

    def compile(
        self, text: str, name: str | None = None, file: str | None = None
    ) -> CompiledTemplate:
        """Compile *text*, raising ``TemplateCompileError`` on bad syntax."""
        try:
            template = self.env.from_string(text)
        except TemplateSyntaxError as exc:
            raise TemplateCompileError.from_engine_error(exc, template=name, file=file) from exc
        return CompiledTemplate(template, name=name)

    def render_string(self, text: str, context: Any) -> str:
        """Compile and render an inline template in one step."""
        return self.compile(text).render(context)


@lru_cache(maxsize=1)
def default_renderer() -> TemplateRenderer:
    """Process-wide renderer without a partial search path."""
    return TemplateRenderer()
