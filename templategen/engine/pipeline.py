"""Generation pipeline: turn one loaded template plus a model into files.

``generate(model)`` runs these steps:

1. ``prepare_model`` hook
2. target resolution (``Target``: the whole model or one of its properties)
3. ``prepare_target`` hook
4. a single render for non-array targets; otherwise, for each item in order:
   ``prepare_item`` -> item model -> ``prepare_item_model`` -> condition gate
   -> render
5. path resolution and optional splitting into several files

Skips and diagnostics accumulate on the pipeline.  Hook aborts and render
failures end the call: results collected so far in that call are discarded
and the error propagates.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import GeneratorError, TemplateNotLoadedError
from .conditions import ConditionEvaluator
from .hooks import ScriptHookRunner, ScriptHooks
from .paths import PathResolver
from .renderer import TemplateRenderer
from .results import ErrorRecord, GenerationOutcome, GenerationResult, SkippedItem
from .splitter import ContentSplitter
from .template import Template
from .writer import ResultWriter

MODEL_CONTEXT_KEY = "Model"
DISABLED_REASON = "disabled"


class PipelineState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    DISABLED = "disabled"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"


class GenerationPipeline:
    """Generates the results of one template.

    Attributes:
        template: The loaded template unit.
        hooks: Hook functions; defaults to the template's own hooks.
        state: Current :class:`PipelineState`.
        results: Results of the last successful ``generate`` call.
        skipped: Skip records of the last call.
        errors: Diagnostics (and load errors) of the last call.
    """

    def __init__(
        self,
        template: Template,
        hooks: ScriptHooks | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.template = template
        self.hooks = hooks if hooks is not None else (template.hooks or ScriptHooks())
        self.path_resolver = PathResolver(renderer)
        self.state = PipelineState.LOADED if template.is_loaded else PipelineState.NOT_LOADED
        self.results: list[GenerationResult] = []
        self.skipped: list[SkippedItem] = []
        self.errors: list[ErrorRecord] = list(template.errors)
        self.skip_reason: str | None = None
        self._evaluator = ConditionEvaluator()

    @property
    def name(self) -> str:
        return self.template.name

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, model: Any) -> GenerationOutcome:
        """Run the pipeline for *model*.

        Raises:
            TemplateNotLoadedError: The template failed to load.
            HookAbortedError: A hook returned ``None`` or ``Abort``.
            RenderError: The template engine failed.
        """
        if not self.template.is_loaded:
            raise TemplateNotLoadedError(
                f'Template "{self.name or "unknown"}" is not loaded. '
                "Check its errors for details.",
                template=self.name,
            )

        self.results = []
        self.skipped = []
        self.errors = []
        self.skip_reason = None

        settings = self.template.settings
        assert settings is not None

        if not settings.enabled:
            self.state = PipelineState.DISABLED
            self.skip_reason = DISABLED_REASON
            return self._outcome()

        self.state = PipelineState.GENERATING
        self._evaluator = ConditionEvaluator()
        runner = ScriptHookRunner(self.hooks, template=self.name)
        results: list[GenerationResult] = []

        try:
            model = runner.run("prepare_model", model)

            if settings.uses_whole_model:
                target = model
            else:
                target = model.get(settings.target) if isinstance(model, Mapping) else None

            target = runner.run("prepare_target", target)

            if isinstance(target, (list, tuple)):
                self._generate_items(model, target, runner, results)
            else:
                self._generate_single(model, target, results)
        except Exception:
            self.state = PipelineState.FAILED
            raise

        self.results = results
        self.state = PipelineState.GENERATED
        return self._outcome()

    def _generate_single(
        self, model: Any, target: Any, results: list[GenerationResult]
    ) -> None:
        settings = self.template.settings
        context = {
            MODEL_CONTEXT_KEY: model,
            settings.model_property: model,
            settings.target_property: target,
        }
        reason = self._gate(context)
        if reason is not None:
            self.skipped.append(SkippedItem(item=target, reason=reason))
            self.skip_reason = reason
            return

        content = self.template.compiled.render(target)
        self._emit(content, target, self.name, results)

    def _generate_items(
        self,
        model: Any,
        target: list[Any] | tuple[Any, ...],
        runner: ScriptHookRunner,
        results: list[GenerationResult],
    ) -> None:
        settings = self.template.settings
        for item in target:
            processed_item = runner.run("prepare_item", item)

            item_model = {
                settings.target_property: target,
                settings.model_property: model,
                settings.target_item: processed_item,
            }
            item_model = runner.run("prepare_item_model", item_model)

            context = {MODEL_CONTEXT_KEY: model}
            if isinstance(item_model, Mapping):
                context.update(item_model)
            reason = self._gate(context)
            if reason is not None:
                self.skipped.append(SkippedItem(item=processed_item, reason=reason))
                continue

            content = self.template.compiled.render(item_model)

            item_name = None
            if isinstance(processed_item, Mapping):
                item_name = processed_item.get(settings.target_item_name_property)
            name_prefix = f"{self.name}-{item_name or 'item'}"
            self._emit(content, item_model, name_prefix, results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _gate(self, context: dict[str, Any]) -> str | None:
        reason = self.template.settings.skip_reason(context, self._evaluator)
        self._drain(self._evaluator.diagnostics)
        return reason

    def _emit(
        self,
        content: str,
        path_model: Any,
        name_prefix: str,
        results: list[GenerationResult],
    ) -> None:
        settings = self.template.settings
        if not settings.is_split:
            path = self._resolve_path(None, path_model, name_prefix)
            results.append(
                GenerationResult(path=path, content=content, append_mode=settings.append_to_existing)
            )
            return

        splitter = ContentSplitter(settings)
        sections = splitter.split(content, name_prefix)
        self._drain(splitter.diagnostics)
        for section in sections:
            path = self._resolve_path(section.file_name, path_model, section.file_name)
            results.append(
                GenerationResult(
                    path=path,
                    content=section.body,
                    append_mode=settings.append_to_existing,
                )
            )

    def _resolve_path(self, file_name: str | None, model: Any, fallback: str) -> str:
        try:
            return self.path_resolver.resolve(self.template.settings, file_name, model)
        except GeneratorError as exc:
            self.errors.append(
                ErrorRecord(
                    phase="generate",
                    message=f"Could not resolve ExportPath ({exc.message}). Using: {fallback}",
                    cause=exc,
                    template=self.name,
                )
            )
            return fallback

    def _drain(self, messages: list[str]) -> None:
        for message in messages:
            self.errors.append(ErrorRecord(phase="generate", message=message, template=self.name))
        messages.clear()

    def _outcome(self) -> GenerationOutcome:
        return GenerationOutcome(
            template=self.name,
            results=list(self.results),
            skipped=list(self.skipped),
            errors=list(self.errors),
            skip_reason=self.skip_reason,
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def preview(self) -> list[dict[str, Any]]:
        """Results of the last call as plain dicts, without writing."""
        return [result.to_preview() for result in self.results]

    def write(self, writer: ResultWriter | None = None) -> list[Path]:
        """Write the results of the last call."""
        return (writer or ResultWriter()).write_all(self.results)

    async def write_async(self, writer: ResultWriter | None = None) -> list[Path]:
        return await (writer or ResultWriter()).write_all_async(self.results)
