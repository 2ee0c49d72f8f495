"""Result records produced by the generation pipeline.

Pydantic v2 models for the finished output files, per-item skip records,
accumulated error records, and the outcome of a single ``generate`` call.
"""

from __future__ import annotations

import os
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# Output files
# ---------------------------------------------------------------------------


class GenerationResult(BaseModel):
    """A single rendered file waiting to be written."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Output file path as resolved from ExportPath")
    content: str = Field(default="", description="Rendered file content")
    append_mode: bool = Field(default=False, description="Append when the file already exists")

    @computed_field  # type: ignore[misc]
    @property
    def directory(self) -> str:
        """Parent directory of :attr:`path`."""
        return os.path.dirname(self.path)

    def to_preview(self) -> dict[str, Any]:
        """Plain dict used by dry-run and preview output."""
        return {
            "path": self.path,
            "content": self.content,
            "append_mode": self.append_mode,
        }


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class SkippedItem(BaseModel):
    """A unit (whole target or one array item) that was not generated."""

    item: Any = None
    reason: str


class ErrorRecord(BaseModel):
    """An accumulated error or diagnostic."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    phase: Literal["load", "generate"]
    message: str
    cause: Optional[BaseException] = Field(default=None, exclude=True)
    template: Optional[str] = None
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.template}: " if self.template else ""
        return f"{prefix}{self.message}"


# ---------------------------------------------------------------------------
# Outcome of one generate() call
# ---------------------------------------------------------------------------


class GenerationOutcome(BaseModel):
    """Everything a ``generate`` call produced."""

    template: str = ""
    results: list[GenerationResult] = Field(default_factory=list)
    skipped: list[SkippedItem] = Field(default_factory=list)
    errors: list[ErrorRecord] = Field(default_factory=list)
    skip_reason: Optional[str] = Field(
        default=None,
        description="Set when the whole unit was skipped ('disabled' or a condition reason)",
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_skipped(self) -> bool:
        """True when the template produced nothing because it was gated off."""
        return self.skip_reason is not None

    @property
    def total_bytes(self) -> int:
        """Size of all rendered content, UTF-8 encoded."""
        return sum(len(r.content.encode("utf-8")) for r in self.results)
