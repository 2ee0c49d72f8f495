"""templategen configuration.

A single Pydantic v2 model holds every setting the CLI needs.  Values come
from, in increasing priority: built-in defaults, a project config file
(``.generatorrc.json`` and friends, searched upwards from the working
directory), ``TEMPLATEGEN_*`` environment variables, and CLI options.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

# Searched in this order within each directory.
CONFIG_FILE_NAMES: tuple[str, ...] = (
    ".generatorrc.json",
    ".generatorrc",
    "generator.config.json",
    "generator.config.yaml",
    "generator.config.yml",
)


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge *overrides* over *defaults* (nested dicts only)."""
    result = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


class GeneratorConfig(BaseModel):
    """Settings for a generation run."""

    template_directory: Path = Field(default=Path("./templates"))
    output_directory: Optional[Path] = Field(
        default=None, description="Base directory for relative export paths"
    )
    model_path: Optional[Path] = Field(default=None)
    extension: str = Field(default=".hbs")
    recurse: bool = Field(default=True)
    verbose: bool = Field(default=False)
    dry_run: bool = Field(default=False)
    continue_on_error: bool = Field(default=False)
    environment: dict[str, str] = Field(
        default_factory=dict,
        description="Variables exported before generation (for env: conditions)",
    )
    plugins: list[str] = Field(
        default_factory=list,
        description="Plugin files (.py, relative to the config file) or module names",
    )

    # Not serialised: where this configuration was read from.
    config_path: Optional[Path] = Field(default=None, exclude=True)

    # ------------------------------------------------------------------
    # Discovery and loading
    # ------------------------------------------------------------------

    @staticmethod
    def find_config_file(base: str | Path | None = None, search_parents: bool = True) -> Path | None:
        """Find the nearest config file starting at *base* (default: cwd)."""
        current = Path(base or Path.cwd()).resolve()
        while True:
            for name in CONFIG_FILE_NAMES:
                candidate = current / name
                if candidate.is_file():
                    return candidate
            if not search_parents or current.parent == current:
                return None
            current = current.parent

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        raw = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(raw) or {}
        else:
            data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("configuration must be an object")
        return data

    @classmethod
    def load(cls, path: str | Path | None = None, base: str | Path | None = None) -> "GeneratorConfig":
        """Load *path* (or the discovered config file) merged over defaults.

        Returns the defaults when no file is given and none is found.

        Raises:
            ConfigError: The file exists but cannot be parsed or validated.
        """
        config_path = Path(path) if path else cls.find_config_file(base)
        if config_path is None:
            return cls()

        try:
            file_values = cls._read_file(config_path)
            merged = _merge(cls().model_dump(), file_values)
            config = cls.model_validate(merged)
        except (OSError, ValueError, yaml.YAMLError, ValidationError) as exc:
            raise ConfigError(
                f'Failed to load config from "{config_path}": {exc}',
                file=str(config_path),
                cause=exc,
            ) from exc

        config.config_path = config_path
        return config

    @classmethod
    def from_env(cls, base: "GeneratorConfig | None" = None) -> "GeneratorConfig":
        """Apply ``TEMPLATEGEN_*`` environment variables over *base*.

        Recognised variables (all optional):
            TEMPLATEGEN_TEMPLATES, TEMPLATEGEN_OUTPUT, TEMPLATEGEN_MODEL,
            TEMPLATEGEN_EXTENSION, TEMPLATEGEN_VERBOSE,
            TEMPLATEGEN_CONTINUE_ON_ERROR.
        """
        config = base or cls()
        overrides: dict[str, Any] = {}
        if os.environ.get("TEMPLATEGEN_TEMPLATES"):
            overrides["template_directory"] = Path(os.environ["TEMPLATEGEN_TEMPLATES"])
        if os.environ.get("TEMPLATEGEN_OUTPUT"):
            overrides["output_directory"] = Path(os.environ["TEMPLATEGEN_OUTPUT"])
        if os.environ.get("TEMPLATEGEN_MODEL"):
            overrides["model_path"] = Path(os.environ["TEMPLATEGEN_MODEL"])
        if os.environ.get("TEMPLATEGEN_EXTENSION"):
            overrides["extension"] = os.environ["TEMPLATEGEN_EXTENSION"]
        for name, field in (
            ("TEMPLATEGEN_VERBOSE", "verbose"),
            ("TEMPLATEGEN_CONTINUE_ON_ERROR", "continue_on_error"),
        ):
            if os.environ.get(name):
                overrides[field] = os.environ[name].lower() in ("1", "true", "yes")
        return config.model_copy(update=overrides)

    def apply_cli_options(self, **options: Any) -> "GeneratorConfig":
        """Return a copy with every non-``None`` option applied."""
        mapping = {
            "templates": "template_directory",
            "model": "model_path",
            "output": "output_directory",
        }
        overrides: dict[str, Any] = {}
        for key, value in options.items():
            if value is None:
                continue
            field = mapping.get(key, key)
            if field not in type(self).model_fields:
                continue
            if field in ("template_directory", "model_path", "output_directory"):
                value = Path(value)
            overrides[field] = value
        return self.model_copy(update=overrides)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def resolve_path(self, relative: str | Path) -> Path:
        """Resolve *relative* against the config file's directory (or cwd)."""
        path = Path(relative)
        if path.is_absolute():
            return path
        base = self.config_path.parent if self.config_path else Path.cwd()
        return (base / path).resolve()

    def apply_environment(self) -> None:
        """Export :attr:`environment` into ``os.environ``."""
        for key, value in self.environment.items():
            os.environ[key] = str(value)

    def save(self, path: str | Path) -> Path:
        """Persist the configuration as JSON."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def create_default(cls, path: str | Path | None = None) -> Path:
        """Write a starter ``.generatorrc.json``."""
        target = Path(path) if path else Path.cwd() / ".generatorrc.json"
        return cls(model_path=Path("./model.json"), output_directory=Path("./output")).save(target)
