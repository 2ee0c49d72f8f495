"""Shared pytest fixtures for the templategen test suite.

Provides reusable fixtures for:
- Temporary template directories
- A factory that writes template trios (body, settings, hooks)
- Sample entity models
- A fresh renderer per test
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest

from templategen.engine.renderer import TemplateRenderer


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Empty directory for template trios."""
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Directory generated files are written into."""
    path = tmp_path / "out"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Template trio factory
# ---------------------------------------------------------------------------


@pytest.fixture
def write_template(templates_dir: Path) -> Callable[..., Path]:
    """Factory writing ``<name>.hbs``, its settings and optional hooks.

    Usage::

        write_template("Entity", "{{ Name }}", {"ExportPath": "out/{{ Name }}.cs"})
        write_template("Entity", body, settings, hooks="def prepare_model(m): ...")
    """

    def _write(
        name: str,
        body: str,
        settings: dict[str, Any] | str | None,
        hooks: str | None = None,
        directory: Path | None = None,
    ) -> Path:
        target_dir = directory or templates_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        template_path = target_dir / f"{name}.hbs"
        template_path.write_text(textwrap.dedent(body), encoding="utf-8")
        if settings is not None:
            raw = settings if isinstance(settings, str) else json.dumps(settings)
            (target_dir / f"{name}.hbs.settings.json").write_text(raw, encoding="utf-8")
        if hooks is not None:
            (target_dir / f"{name}.hbs.py").write_text(textwrap.dedent(hooks), encoding="utf-8")
        return template_path

    return _write


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@pytest.fixture
def entity_model() -> dict[str, Any]:
    """A model with an ``Entities`` array, as most templates expect."""
    return {
        "Namespace": "Acme.Domain",
        "Entities": [
            {
                "Name": "Customer",
                "IsAbstract": False,
                "Properties": [
                    {"Name": "Id", "Type": "Guid"},
                    {"Name": "Email", "Type": "string", "Length": 120},
                ],
            },
            {
                "Name": "Order",
                "IsAbstract": False,
                "Properties": [
                    {"Name": "Id", "Type": "Guid"},
                    {"Name": "Total", "Type": "decimal", "IsNullable": True},
                ],
            },
            {
                "Name": "EntityBase",
                "IsAbstract": True,
                "Properties": [],
            },
        ],
    }


@pytest.fixture
def model_file(tmp_path: Path, entity_model: dict[str, Any]) -> Path:
    """``entity_model`` saved as JSON."""
    path = tmp_path / "model.json"
    path.write_text(json.dumps(entity_model), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


@pytest.fixture
def renderer() -> TemplateRenderer:
    """A fresh renderer without a partial search path."""
    return TemplateRenderer()
