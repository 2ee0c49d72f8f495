"""Exception hierarchy for templategen.

Every error raised by the engine derives from ``GeneratorError`` so callers
(the CLI, batch loaders) can catch one type while still reading structured
context: the template name, the offending file, a line number when the
template engine reports one, and the wrapped cause.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------


class GeneratorError(Exception):
    """Base error for all generator failures."""

    default_code = "GENERATOR_ERROR"

    def __init__(
        self,
        message: str,
        *,
        template: str | None = None,
        file: str | None = None,
        line: int | None = None,
        code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.template = template
        self.file = file
        self.line = line
        self.code = code or self.default_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_detailed_string(self) -> str:
        """Multi-line message including every known piece of context."""
        parts = [f"[{self.code}] {self.message}"]
        if self.template:
            parts.append(f"  Template: {self.template}")
        if self.file:
            parts.append(f"  File: {self.file}")
        if self.line:
            parts.append(f"  Line: {self.line}")
        if self.cause is not None:
            parts.append(f"  Caused by: {self.cause}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation."""
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "template": self.template,
            "file": self.file,
            "line": self.line,
            "timestamp": self.timestamp,
            "cause": str(self.cause) if self.cause is not None else None,
        }


# ---------------------------------------------------------------------------
# Load-time errors
# ---------------------------------------------------------------------------


class TemplateLoadError(GeneratorError):
    """Raised when a template trio cannot be read or parsed."""

    default_code = "TEMPLATE_LOAD_ERROR"


class TemplateCompileError(GeneratorError):
    """Raised when the template body has invalid syntax."""

    default_code = "TEMPLATE_COMPILE_ERROR"

    @classmethod
    def from_engine_error(
        cls,
        exc: BaseException,
        template: str | None = None,
        file: str | None = None,
    ) -> "TemplateCompileError":
        """Build from a Jinja2 ``TemplateSyntaxError`` (or similar)."""
        line = getattr(exc, "lineno", None)
        if line is None:
            match = re.search(r"line (\d+)", str(exc), re.IGNORECASE)
            line = int(match.group(1)) if match else None
        return cls(
            f"Failed to compile template: {exc}",
            template=template,
            file=file,
            line=line,
            cause=exc,
        )


class SettingsError(GeneratorError):
    """Raised when template settings are missing or invalid."""

    default_code = "SETTINGS_ERROR"


class ConfigError(GeneratorError):
    """Raised when a generator configuration file cannot be loaded."""

    default_code = "CONFIG_ERROR"


# ---------------------------------------------------------------------------
# Generation-time errors
# ---------------------------------------------------------------------------


class TemplateNotLoadedError(GeneratorError):
    """Raised when ``generate`` is called on a template that failed to load."""

    default_code = "TEMPLATE_NOT_LOADED"


class HookAbortedError(GeneratorError):
    """Raised when a script hook signals that generation cannot proceed."""

    default_code = "HOOK_ABORTED"

    def __init__(self, stage: str, reason: str, **kwargs: Any) -> None:
        self.stage = stage
        self.reason = reason
        super().__init__(f"Hook '{stage}' aborted generation: {reason}", **kwargs)


class RenderError(GeneratorError):
    """Raised when the template engine fails while rendering."""

    default_code = "RENDER_ERROR"


class ResultWriteError(GeneratorError):
    """Raised when a generated file cannot be written."""

    default_code = "WRITE_ERROR"


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class PluginError(GeneratorError):
    """Raised when a plugin cannot be registered, imported or run."""

    default_code = "PLUGIN_ERROR"

    def __init__(self, message: str, *, plugin_name: str | None = None, **kwargs: Any) -> None:
        self.plugin_name = plugin_name
        super().__init__(message, **kwargs)

    def to_detailed_string(self) -> str:
        base = super().to_detailed_string()
        if self.plugin_name:
            return f"{base}\n  Plugin: {self.plugin_name}"
        return base
