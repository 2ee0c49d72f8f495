"""Typed view over a template's ``*.hbs.settings.json`` file.

Settings files use PascalCase keys (``Target``, ``ExportPath``, ``SplitOn``
...).  The model accepts those as well as the snake_case field names, drops
empty values so defaults apply, and ignores unknown keys.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_pascal

from ..errors import SettingsError
from .conditions import ConditionEvaluator


ENV_PREFIX = "env:"
WHOLE_MODEL_TARGET = "Model"


def env_flag(name: str) -> bool:
    """True when environment variable *name* is set to a truthy value."""
    value = os.environ.get(name)
    return bool(value) and value not in ("false", "0")


class TemplateSettings(BaseModel):
    """Per-template generation settings."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    target: str = Field(default=WHOLE_MODEL_TARGET, description="Model property to iterate")
    target_item: str = Field(default="item", description="Context key for the current element")
    target_property: str = Field(default="target", description="Context key for the full target")
    model_property: str = Field(default="model", description="Context key for the original model")
    target_item_name_property: str = Field(
        default="Name", description="Item property used for naming fallbacks"
    )
    export_path: Optional[str] = Field(default=None, description="Output path expression")
    prepare_export_path_using_template: bool = Field(default=True)
    prepare_export_path_using_replace: bool = Field(default=False)
    append_to_existing: bool = Field(default=False)
    split_on: Optional[str] = Field(default=None, description="Literal split marker")
    file_name_pattern: Optional[str] = Field(
        default=None, description="Regex with a named group 'FileName'"
    )
    remove_file_name: bool = Field(default=False)
    generate_if: Optional[str] = Field(default=None)
    skip_if: Optional[str] = Field(default=None)
    enabled: bool = Field(default=True)
    description: Optional[str] = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data

    # ------------------------------------------------------------------
    # Derived flags
    # ------------------------------------------------------------------

    @property
    def uses_whole_model(self) -> bool:
        """True when the target is the model itself rather than a property."""
        return not self.target or self.target == WHOLE_MODEL_TARGET

    @property
    def is_split(self) -> bool:
        return bool(self.split_on)

    # ------------------------------------------------------------------
    # Condition gate
    # ------------------------------------------------------------------

    def skip_reason(
        self, context: Any, evaluator: ConditionEvaluator | None = None
    ) -> str | None:
        """Return why *context* should not be generated, or ``None``.

        ``GenerateIf`` must hold and ``SkipIf`` must not.  Either may use the
        ``env:VAR`` form to test an environment variable instead of the
        context.
        """
        if not self.enabled:
            return "disabled"

        evaluator = evaluator or ConditionEvaluator()

        if self.generate_if:
            if self.generate_if.startswith(ENV_PREFIX):
                if not env_flag(self.generate_if[len(ENV_PREFIX):]):
                    return f"GenerateIf not satisfied: {self.generate_if}"
            elif not evaluator.evaluate(self.generate_if, context):
                return f"GenerateIf not satisfied: {self.generate_if}"

        if self.skip_if:
            if self.skip_if.startswith(ENV_PREFIX):
                if env_flag(self.skip_if[len(ENV_PREFIX):]):
                    return f"SkipIf matched: {self.skip_if}"
            elif evaluator.evaluate(self.skip_if, context):
                return f"SkipIf matched: {self.skip_if}"

        return None

    def should_generate(
        self, context: Any, evaluator: ConditionEvaluator | None = None
    ) -> bool:
        """Compose ``enabled``, ``GenerateIf`` and ``SkipIf`` for *context*."""
        return self.skip_reason(context, evaluator) is None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TemplateSettings":
        """Validate a parsed settings object, raising ``SettingsError``."""
        if not isinstance(data, dict):
            raise SettingsError(
                f"Settings must be a JSON object, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SettingsError(f"Invalid template settings: {exc}", cause=exc) from exc

    @classmethod
    def from_file(cls, path: str | Path) -> "TemplateSettings":
        """Read and validate a ``*.hbs.settings.json`` file."""
        file_path = Path(path)
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise SettingsError(
                f"Settings file is not valid UTF-8: {exc}", file=str(file_path), cause=exc
            ) from exc
        except json.JSONDecodeError as exc:
            raise SettingsError(
                f"Malformed settings JSON: {exc}", file=str(file_path), cause=exc
            ) from exc
        try:
            return cls.from_dict(data)
        except SettingsError as exc:
            exc.file = str(file_path)
            raise
