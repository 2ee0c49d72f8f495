"""Persist generation results to disk.

Parent directories are created as needed.  A result in append mode is
appended when its file already exists; everything else is written with
create-or-truncate semantics.  There is no locking: results are written one
after another in the order given.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from ..errors import ResultWriteError
from .results import GenerationResult


class ResultWriter:
    """Writes :class:`GenerationResult` objects.

    Relative result paths are resolved against *base_dir* when given,
    otherwise against the current working directory.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def target_path(self, result: GenerationResult) -> Path:
        path = Path(result.path)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    # -- Sync ----------------------------------------------------------------

    def write(self, result: GenerationResult) -> Path:
        """Write one result and return the file path."""
        path = self.target_path(result)
        try:
            _write_file(path, result.content, result.append_mode)
        except OSError as exc:
            raise ResultWriteError(
                f"Failed to write {path}: {exc}", file=str(path), cause=exc
            ) from exc
        return path

    def write_all(self, results: Iterable[GenerationResult]) -> list[Path]:
        return [self.write(result) for result in results]

    # -- Async ---------------------------------------------------------------

    async def write_async(self, result: GenerationResult) -> Path:
        """Write one result in a worker thread."""
        path = self.target_path(result)
        try:
            await asyncio.to_thread(_write_file, path, result.content, result.append_mode)
        except OSError as exc:
            raise ResultWriteError(
                f"Failed to write {path}: {exc}", file=str(path), cause=exc
            ) from exc
        return path

    async def write_all_async(self, results: Iterable[GenerationResult]) -> list[Path]:
        written: list[Path] = []
        for result in results:
            written.append(await self.write_async(result))
        return written


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _write_file(path: Path, content: str, append: bool) -> None:
    """Synchronous helper: create parent dirs, then append or overwrite."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if append and path.exists():
        with path.open("a", encoding="utf-8") as fh:
            fh.write(content)
        return
    path.write_text(content, encoding="utf-8")
