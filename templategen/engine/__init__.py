"""templategen engine: render JSON models against templates into files.

Quick usage::

    from templategen.engine import TemplateLoader, ResultWriter

    loader = TemplateLoader("./templates")
    loader.load()
    outcomes = loader.generate(model, writer=ResultWriter("./out"))

Single template::

    from templategen.engine import GenerationPipeline, Template

    template = Template.load("./templates", "Entity.hbs")
    pipeline = GenerationPipeline(template)
    outcome = pipeline.generate(model)
    pipeline.write()
"""

from templategen.engine.conditions import ConditionEvaluator
from templategen.engine.hooks import Abort, ScriptHookRunner, ScriptHooks, load_hook_module
from templategen.engine.loader import TemplateLoader
from templategen.engine.paths import PathResolver, resolve_export_path
from templategen.engine.pipeline import GenerationPipeline, PipelineState
from templategen.engine.plugins import Plugin, PluginHook, PluginManager, load_plugin
from templategen.engine.renderer import CompiledTemplate, TemplateRenderer
from templategen.engine.results import (
    ErrorRecord,
    GenerationOutcome,
    GenerationResult,
    SkippedItem,
)
from templategen.engine.settings import TemplateSettings
from templategen.engine.splitter import ContentSplitter, SplitSection
from templategen.engine.template import Template
from templategen.engine.writer import ResultWriter

__all__ = [
    "Abort",
    "CompiledTemplate",
    "ConditionEvaluator",
    "ContentSplitter",
    "ErrorRecord",
    "GenerationOutcome",
    "GenerationPipeline",
    "GenerationResult",
    "PathResolver",
    "PipelineState",
    "Plugin",
    "PluginHook",
    "PluginManager",
    "ResultWriter",
    "ScriptHookRunner",
    "ScriptHooks",
    "SkippedItem",
    "SplitSection",
    "Template",
    "TemplateLoader",
    "TemplateRenderer",
    "TemplateSettings",
    "load_hook_module",
    "load_plugin",
    "resolve_export_path",
]
