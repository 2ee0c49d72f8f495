"""Discover templates in directories and run them as a batch.

Templates are processed one at a time in discovery order (sorted paths).
A template that fails to load is reported and left out; a template whose
generation fails is reported with its name attached, and the batch either
continues or re-raises depending on ``continue_on_error``.  Files for a
template are written only after its full result set has been computed.

Plugins registered on the loader's :class:`PluginManager` see the batch:
``transform_model`` and ``on_before_generate`` run once before the first
template, ``transform_result`` runs on every result, the write hooks wrap
each template's writes, and ``on_after_generate`` receives the outcomes.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ..errors import GeneratorError, PluginError
from ..stats import GenerationStats
from .pipeline import GenerationPipeline
from .plugins import PluginHook, PluginManager
from .renderer import TemplateRenderer
from .results import ErrorRecord, GenerationOutcome, GenerationResult
from .template import Template
from .writer import ResultWriter


class TemplateLoader:
    """Loads every template under one or more directories.

    Register plugins on *plugins* before :meth:`load` so their filters and
    partials are available when templates compile.
    """

    def __init__(
        self,
        paths: str | Path | Sequence[str | Path],
        extension: str = ".hbs",
        recurse: bool = True,
        plugins: PluginManager | None = None,
    ) -> None:
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self.paths = [Path(p) for p in paths]
        self.extension = extension
        self.recurse = recurse
        self.renderer = TemplateRenderer(self.paths)
        self.plugins = plugins if plugins is not None else PluginManager()
        self.plugins.attach(self.renderer)
        self.templates: list[Template] = []
        self.pipelines: list[GenerationPipeline] = []
        self.outcomes: list[GenerationOutcome] = []
        self.errors: list[ErrorRecord] = []

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _template_files(self, root: Path) -> list[Path]:
        pattern = f"*{self.extension}"
        files = root.rglob(pattern) if self.recurse else root.glob(pattern)
        return sorted(p for p in files if p.is_file())

    def load(self) -> list[Template]:
        """(Re)load all templates, collecting load errors."""
        self.templates = []
        self.pipelines = []
        self.errors = []
        seen: set[Path] = set()

        for root in self.paths:
            if not root.is_dir():
                self.errors.append(
                    ErrorRecord(
                        phase="load",
                        message=f"Failed to read directory: {root} does not exist or is not a directory",
                        path=str(root),
                    )
                )
                continue

            for file_path in self._template_files(root):
                template = Template.load(file_path.parent, file_path.name, self.renderer)
                if not template.is_loaded:
                    self.errors.extend(template.errors)
                    continue
                key = template.template_path.resolve()
                if key in seen:
                    continue
                seen.add(key)
                self.templates.append(template)
                self.pipelines.append(GenerationPipeline(template, renderer=self.renderer))

        return self.templates

    # ------------------------------------------------------------------
    # Batch generation
    # ------------------------------------------------------------------

    def _record_failure(
        self, pipeline: GenerationPipeline, exc: Exception, stats: GenerationStats | None
    ) -> None:
        message = exc.message if isinstance(exc, GeneratorError) else str(exc)
        self.errors.append(
            ErrorRecord(phase="generate", message=message, cause=exc, template=pipeline.name)
        )
        if stats is not None:
            stats.fail_template(pipeline.name, message)

    def _record_success(
        self, outcome: GenerationOutcome, stats: GenerationStats | None
    ) -> None:
        self.outcomes.append(outcome)
        self.errors.extend(outcome.errors)
        if stats is not None:
            stats.end_template(
                outcome.template,
                files=len(outcome.results),
                total_bytes=outcome.total_bytes,
                skipped=len(outcome.skipped),
            )

    def _generate_one(self, pipeline: GenerationPipeline, model: Any) -> GenerationOutcome:
        outcome = pipeline.generate(model)
        if not self.plugins.has_handlers(PluginHook.TRANSFORM_RESULT):
            return outcome
        results = [self._transform_result(pipeline, result) for result in pipeline.results]
        pipeline.results = results
        return outcome.model_copy(update={"results": list(results)})

    def _transform_result(
        self, pipeline: GenerationPipeline, result: GenerationResult
    ) -> GenerationResult:
        transformed = self.plugins.transform(PluginHook.TRANSFORM_RESULT, result)
        if not isinstance(transformed, GenerationResult):
            raise PluginError(
                f"transform_result returned {type(transformed).__name__}, "
                "expected a GenerationResult",
                template=pipeline.name,
            )
        return transformed

    def generate(
        self,
        model: Any,
        *,
        write: bool = True,
        continue_on_error: bool = True,
        writer: ResultWriter | None = None,
        stats: GenerationStats | None = None,
    ) -> list[GenerationOutcome]:
        """Generate (and optionally write) every loaded template."""
        writer = writer or ResultWriter()
        self.outcomes = []
        model = self.plugins.transform(PluginHook.TRANSFORM_MODEL, model)
        self.plugins.run_hooks(PluginHook.BEFORE_GENERATE, model)
        for pipeline in self.pipelines:
            if stats is not None:
                stats.start_template(pipeline.name)
            try:
                outcome = self._generate_one(pipeline, model)
                if write:
                    self.plugins.run_hooks(PluginHook.BEFORE_WRITE, list(pipeline.results))
                    paths = pipeline.write(writer)
                    self.plugins.run_hooks(PluginHook.AFTER_WRITE, paths)
            except Exception as exc:
                self._record_failure(pipeline, exc, stats)
                if not continue_on_error:
                    raise
                continue
            self._record_success(outcome, stats)
        self.plugins.run_hooks(PluginHook.AFTER_GENERATE, list(self.outcomes))
        return self.outcomes

    async def generate_async(
        self,
        model: Any,
        *,
        write: bool = True,
        continue_on_error: bool = True,
        writer: ResultWriter | None = None,
        stats: GenerationStats | None = None,
    ) -> list[GenerationOutcome]:
        """Like :meth:`generate`, writing files without blocking the event loop."""
        writer = writer or ResultWriter()
        self.outcomes = []
        model = self.plugins.transform(PluginHook.TRANSFORM_MODEL, model)
        await self.plugins.run_hooks_async(PluginHook.BEFORE_GENERATE, model)
        for pipeline in self.pipelines:
            if stats is not None:
                stats.start_template(pipeline.name)
            try:
                outcome = self._generate_one(pipeline, model)
                if write:
                    await self.plugins.run_hooks_async(
                        PluginHook.BEFORE_WRITE, list(pipeline.results)
                    )
                    paths = await pipeline.write_async(writer)
                    await self.plugins.run_hooks_async(PluginHook.AFTER_WRITE, paths)
            except Exception as exc:
                self._record_failure(pipeline, exc, stats)
                if not continue_on_error:
                    raise
                continue
            self._record_success(outcome, stats)
        await self.plugins.run_hooks_async(PluginHook.AFTER_GENERATE, list(self.outcomes))
        return self.outcomes

    def preview(self, model: Any, *, continue_on_error: bool = True) -> list[dict[str, Any]]:
        """What would be generated, per template, without writing anything.

        Plugin transforms apply; lifecycle hooks do not run.
        """
        previews: list[dict[str, Any]] = []
        model = self.plugins.transform(PluginHook.TRANSFORM_MODEL, model)
        for pipeline in self.pipelines:
            try:
                outcome = self._generate_one(pipeline, model)
            except Exception as exc:
                self._record_failure(pipeline, exc, None)
                if not continue_on_error:
                    raise
                previews.append({"template": pipeline.name, "files": [], "error": str(exc)})
                continue
            self.errors.extend(outcome.errors)
            entry: dict[str, Any] = {"template": pipeline.name, "files": pipeline.preview()}
            if outcome.skip_reason:
                entry["skipped"] = outcome.skip_reason
            previews.append(entry)
        return previews

    def validate_all(self) -> dict[str, Any]:
        """Validate every loaded template without generating output."""
        results = []
        for template in self.templates:
            valid, errors = template.validate()
            results.append(
                {
                    "template": template.name,
                    "valid": valid,
                    "errors": [e.message for e in errors],
                }
            )
        return {"valid": all(r["valid"] for r in results), "results": results}
