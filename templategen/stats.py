"""Generation statistics: timing, file counts and sizes per template."""

from __future__ import annotations

import time
from typing import Any, Optional

from pydantic import BaseModel, Field

from .utils import format_bytes, format_duration


class TemplateStats(BaseModel):
    """Counters for one template."""

    name: str
    started_at: float = Field(default_factory=time.monotonic)
    ended_at: Optional[float] = None
    files: int = 0
    bytes: int = 0
    skipped: int = 0
    success: bool = False
    error: Optional[str] = None

    @property
    def duration(self) -> float:
        """Seconds spent on this template (so far, if still running)."""
        end = self.ended_at if self.ended_at is not None else time.monotonic()
        return end - self.started_at


class GenerationStats:
    """Collects statistics for a batch of templates."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.started_at: float | None = None
        self.ended_at: float | None = None
        self._templates: dict[str, TemplateStats] = {}
        self.errors: list[dict[str, str]] = []

    # -- Timer ---------------------------------------------------------------

    def start(self) -> None:
        self.started_at = time.monotonic()

    def stop(self) -> None:
        self.ended_at = time.monotonic()

    @property
    def duration(self) -> float | None:
        if self.started_at is None:
            return None
        end = self.ended_at if self.ended_at is not None else time.monotonic()
        return end - self.started_at

    # -- Per-template --------------------------------------------------------

    def start_template(self, name: str) -> None:
        self._templates[name] = TemplateStats(name=name)

    def end_template(self, name: str, files: int = 0, total_bytes: int = 0, skipped: int = 0) -> None:
        stats = self._templates.get(name)
        if stats is None:
            return
        stats.ended_at = time.monotonic()
        stats.files = files
        stats.bytes = total_bytes
        stats.skipped = skipped
        stats.success = True

    def fail_template(self, name: str, error: BaseException | str) -> None:
        message = str(error)
        stats = self._templates.get(name)
        if stats is not None:
            stats.ended_at = time.monotonic()
            stats.success = False
            stats.error = message
        self.errors.append({"template": name, "error": message})

    # -- Aggregates ----------------------------------------------------------

    @property
    def template_stats(self) -> list[TemplateStats]:
        return list(self._templates.values())

    @property
    def total_templates(self) -> int:
        return len(self._templates)

    @property
    def successful_templates(self) -> int:
        return sum(1 for s in self._templates.values() if s.success)

    @property
    def failed_templates(self) -> int:
        return sum(1 for s in self._templates.values() if s.error is not None)

    @property
    def total_files(self) -> int:
        return sum(s.files for s in self._templates.values() if s.success)

    @property
    def total_bytes(self) -> int:
        return sum(s.bytes for s in self._templates.values() if s.success)

    def to_summary(self) -> dict[str, Any]:
        """Condensed summary suitable for JSON output and the CLI table."""
        duration = self.duration or 0.0
        return {
            "duration": duration,
            "duration_formatted": format_duration(duration),
            "templates": {
                "total": self.total_templates,
                "successful": self.successful_templates,
                "failed": self.failed_templates,
            },
            "files": self.total_files,
            "bytes": self.total_bytes,
            "bytes_formatted": format_bytes(self.total_bytes),
            "errors": list(self.errors),
        }

    def summary_rows(self) -> dict[str, str]:
        """Label -> value rows for ``print_summary_table``."""
        rows = {
            "Duration": format_duration(self.duration or 0.0),
            "Templates": f"{self.successful_templates}/{self.total_templates} successful",
            "Files": str(self.total_files),
            "Size": format_bytes(self.total_bytes),
        }
        if self.failed_templates:
            rows["Errors"] = str(self.failed_templates)
        return rows
