"""Command-line interface for templategen.

Usage::

    templategen generate -t ./templates -m ./model.json
    templategen generate -t ./templates -m ./model.json -o ./out --dry-run
    templategen preview -t ./templates -m ./model.json --json
    templategen validate -t ./templates -v
    templategen list -t ./templates

Options not given on the command line fall back to ``TEMPLATEGEN_*``
environment variables, then to the nearest ``.generatorrc.json`` (or
``generator.config.yaml``), then to built-in defaults.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import GeneratorConfig
from .engine.loader import TemplateLoader
from .engine.plugins import PluginManager, load_plugin
from .engine.writer import ResultWriter
from .errors import ConfigError, GeneratorError, PluginError
from .stats import GenerationStats
from .utils import (
    console,
    create_progress,
    load_json,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
    truncate,
)

PREVIEW_LIMIT = 500


class CLIError(Exception):
    """A user-facing failure that ends the command with exit status 1."""


# ---------------------------------------------------------------------------
# Shared setup
# ---------------------------------------------------------------------------


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Defaults < config file < environment < command line."""
    try:
        config = GeneratorConfig.load(getattr(args, "config", None))
    except ConfigError as exc:
        raise CLIError(exc.message) from exc

    if config.config_path is not None:
        # Paths in a config file are relative to that file.
        updates: dict[str, Any] = {"template_directory": config.resolve_path(config.template_directory)}
        if config.model_path is not None:
            updates["model_path"] = config.resolve_path(config.model_path)
        if config.output_directory is not None:
            updates["output_directory"] = config.resolve_path(config.output_directory)
        if config.plugins:
            updates["plugins"] = [
                str(config.resolve_path(ref)) if ref.endswith(".py") else ref
                for ref in config.plugins
            ]
        config = config.model_copy(update=updates)

    config = GeneratorConfig.from_env(config)
    extra_plugins = getattr(args, "plugin", None)
    return config.apply_cli_options(
        templates=getattr(args, "templates", None),
        model=getattr(args, "model", None),
        output=getattr(args, "output", None),
        verbose=getattr(args, "verbose", None) or None,
        dry_run=getattr(args, "dry_run", None) or None,
        continue_on_error=getattr(args, "continue_on_error", None) or None,
        plugins=[*config.plugins, *extra_plugins] if extra_plugins else None,
    )


def _load_templates(config: GeneratorConfig) -> TemplateLoader:
    template_dir = Path(config.template_directory).resolve()
    if not template_dir.is_dir():
        raise CLIError(f"Template directory not found: {template_dir}")

    loader = TemplateLoader(
        template_dir,
        extension=config.extension,
        recurse=config.recurse,
        plugins=_load_plugins(config),
    )
    loader.load()
    if config.verbose:
        console.print(f"[dim]Templates:[/dim] {template_dir}")
        console.print(f"[dim]Loaded {len(loader.templates)} template(s)[/dim]")
    return loader


def _load_plugins(config: GeneratorConfig) -> PluginManager:
    manager = PluginManager()
    for ref in config.plugins:
        try:
            plugin = manager.register(load_plugin(ref))
        except PluginError as exc:
            raise CLIError(exc.message) from exc
        if config.verbose:
            console.print(f"[dim]Plugin:[/dim] {escape(plugin.name)}")
    return manager


def _load_model(config: GeneratorConfig) -> Any:
    if config.model_path is None:
        raise CLIError("No model file given (use -m/--model or set model_path in the config file)")
    model_path = Path(config.model_path).resolve()
    if not model_path.is_file():
        raise CLIError(f"Model file not found: {model_path}")
    try:
        return load_json(model_path)
    except (OSError, json.JSONDecodeError) as exc:
        raise CLIError(f"Error parsing model file: {exc}") from exc


def _print_errors(loader: TemplateLoader, title: str = "Warnings/Errors") -> None:
    if not loader.errors:
        return
    print_warning(f"{title}:")
    for error in loader.errors:
        console.print(f"   - {error}", markup=False)


def _print_json(data: Any) -> None:
    # No wrapping, so long paths stay valid JSON.
    console.print(
        json.dumps(data, indent=2, ensure_ascii=False, default=str),
        markup=False,
        highlight=False,
        emoji=False,
        soft_wrap=True,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_generate(args: argparse.Namespace) -> int:
    config = _build_config(args)
    config.apply_environment()
    loader = _load_templates(config)
    model = _load_model(config)

    if config.dry_run:
        previews = loader.preview(model, continue_on_error=True)
        _print_previews(previews, verbose=config.verbose)
        total = sum(len(p["files"]) for p in previews)
        console.print(f"Total: {total} file(s) would be generated")
        return 0

    writer = ResultWriter(config.output_directory)
    stats = GenerationStats()
    stats.start()
    try:
        with create_progress() as progress:
            progress.add_task(f"Generating from {len(loader.pipelines)} template(s)...", total=None)
            outcomes = asyncio.run(
                loader.generate_async(
                    model,
                    write=True,
                    continue_on_error=config.continue_on_error,
                    writer=writer,
                    stats=stats,
                )
            )
    except Exception as exc:
        stats.stop()
        print_error(f"Generation failed: {exc}")
        if config.verbose and isinstance(exc, GeneratorError):
            console.print(exc.to_detailed_string(), markup=False)
        return 1
    stats.stop()

    print_success(f"Generated {stats.total_files} file(s)")
    if config.verbose:
        for outcome in outcomes:
            for result in outcome.results:
                console.print(f"   {writer.target_path(result)}", markup=False)
            if outcome.skip_reason:
                console.print(f"   [dim]{escape(outcome.template)}: skipped ({escape(outcome.skip_reason)})[/dim]")
    print_summary_table(stats.summary_rows(), title="Generation Summary")
    _print_errors(loader)
    return 0


def _print_previews(previews: list[dict[str, Any]], verbose: bool) -> None:
    print_header("Preview (dry-run)")
    for preview in previews:
        console.print(f"[bold]Template:[/bold] {escape(preview['template'])}")
        if "error" in preview:
            print_error(f"   Error: {preview['error']}")
            continue
        if "skipped" in preview:
            console.print(f"   [dim]skipped: {escape(preview['skipped'])}[/dim]")
        for file in preview["files"]:
            mode = " (append)" if file["append_mode"] else ""
            console.print(f"   {file['path']}{mode}", markup=False)
            if verbose:
                console.print(file["content"], markup=False)
            else:
                console.print(truncate(file["content"], PREVIEW_LIMIT), markup=False, style="dim")
        console.print()


def cmd_preview(args: argparse.Namespace) -> int:
    config = _build_config(args)
    config.apply_environment()
    loader = _load_templates(config)
    model = _load_model(config)

    previews = loader.preview(model, continue_on_error=True)
    if args.json:
        _print_json(previews)
        return 0

    _print_previews(previews, verbose=config.verbose)
    _print_errors(loader)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    config = _build_config(args)
    loader = _load_templates(config)

    report = loader.validate_all()
    console.print(f"Validating {len(report['results'])} template(s)...")
    for result in report["results"]:
        mark = "[green]OK[/green]" if result["valid"] else "[red]INVALID[/red]"
        console.print(f"  {mark} {escape(result['template'])}")
        if not result["valid"] and config.verbose:
            for message in result["errors"]:
                console.print(f"     - {message}", markup=False)

    load_failures = [e for e in loader.errors if e.phase == "load"]
    for error in load_failures:
        print_error(f"  {error}")

    if report["valid"] and not load_failures:
        print_success("All templates are valid")
        return 0
    print_error("Some templates have validation errors")
    return 1


def cmd_list(args: argparse.Namespace) -> int:
    config = _build_config(args)
    loader = _load_templates(config)

    rows = []
    for template in loader.templates:
        settings = template.settings
        rows.append(
            {
                "name": template.name,
                "path": str(template.template_path),
                "target": settings.target,
                "export_path": settings.export_path,
                "enabled": settings.enabled,
                "split": settings.is_split,
                "description": settings.description,
            }
        )

    if args.json:
        _print_json(rows)
        return 0

    table = Table(title=f"Templates ({len(rows)})", header_style="bold cyan")
    table.add_column("Name", no_wrap=True)
    table.add_column("Target")
    table.add_column("Export Path")
    table.add_column("Enabled")
    table.add_column("Description", style="dim")
    for row in rows:
        table.add_row(
            escape(row["name"]),
            escape(row["target"]),
            escape(row["export_path"] or ""),
            "yes" if row["enabled"] else "no",
            escape(row["description"] or ""),
        )
    console.print(table)
    _print_errors(loader, title="Load errors")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="templategen",
        description="Generate files from JSON models and templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  templategen generate -t ./templates -m ./model.json\n"
            "  templategen generate -t ./templates -m ./model.json -o ./out --dry-run\n"
            "  templategen validate -t ./templates -v\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--templates", "-t", default=None, help="Path to templates directory")
        sub.add_argument("--config", "-c", default=None, help="Path to a config file")
        sub.add_argument("--verbose", "-v", action="store_true", help="Show detailed output")
        sub.add_argument(
            "--plugin",
            "-p",
            action="append",
            default=None,
            help="Plugin file (.py) or module name; may be repeated",
        )

    generate = subparsers.add_parser("generate", aliases=["gen"], help="Generate files from templates")
    common(generate)
    generate.add_argument("--model", "-m", default=None, help="Path to model JSON file")
    generate.add_argument("--output", "-o", default=None, help="Base directory for relative export paths")
    generate.add_argument("--dry-run", action="store_true", help="Preview output without writing files")
    generate.add_argument(
        "--continue-on-error", action="store_true", help="Continue processing if a template fails"
    )
    generate.set_defaults(handler=cmd_generate)

    preview = subparsers.add_parser("preview", help="Preview generated output without writing files")
    common(preview)
    preview.add_argument("--model", "-m", default=None, help="Path to model JSON file")
    preview.add_argument("--json", action="store_true", help="Output preview as JSON")
    preview.set_defaults(handler=cmd_preview)

    validate = subparsers.add_parser("validate", aliases=["val"], help="Validate templates")
    common(validate)
    validate.set_defaults(handler=cmd_validate)

    list_cmd = subparsers.add_parser("list", aliases=["ls"], help="List discovered templates")
    common(list_cmd)
    list_cmd.add_argument("--json", action="store_true", help="Output as JSON")
    list_cmd.set_defaults(handler=cmd_list)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``templategen`` and ``python -m templategen.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        code = args.handler(args)
    except CLIError as exc:
        print_error(f"Error: {exc}")
        code = 1

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
