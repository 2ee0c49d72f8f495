"""Split one rendered output into several named files.

The rendered text is cut on the literal ``SplitOn`` marker.  Each non-blank
section becomes one output file; its name comes from the ``FileName`` group
of ``FileNamePattern`` when that matches, and from ``<prefix>-<index>``
otherwise.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import SettingsError
from .settings import TemplateSettings

FILE_NAME_GROUP = "FileName"

# "(?<name>" from other regex dialects; lookbehinds "(?<=" and "(?<!" stay as they are.
_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?=[A-Za-z_])")


def compile_file_name_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a ``FileNamePattern``, accepting ``(?<FileName>...)`` groups.

    Raises:
        re.error: The pattern is not a valid regular expression.
    """
    return re.compile(_NAMED_GROUP.sub("(?P<", pattern))


@dataclass(frozen=True)
class SplitSection:
    """One retained section of split output."""

    file_name: str
    body: str
    index: int


class ContentSplitter:
    """Splits content according to a template's split settings.

    Pattern mismatches are not fatal: the default name is used and a message
    is appended to :attr:`diagnostics`.
    """

    def __init__(self, settings: TemplateSettings) -> None:
        if not settings.split_on:
            raise SettingsError("SplitOn is not configured")
        self.settings = settings
        self.diagnostics: list[str] = []
        self._pattern: re.Pattern[str] | None = None
        if settings.file_name_pattern:
            try:
                self._pattern = compile_file_name_pattern(settings.file_name_pattern)
            except re.error as exc:
                raise SettingsError(
                    f"Invalid FileNamePattern {settings.file_name_pattern!r}: {exc}",
                    cause=exc,
                ) from exc

    def split(self, content: str, name_prefix: str) -> list[SplitSection]:
        """Return the retained sections of *content* in split order."""
        sections: list[SplitSection] = []
        for index, raw in enumerate(content.split(self.settings.split_on)):
            if not raw.strip():
                continue
            default_name = f"{name_prefix}-{index}"
            file_name, body = self._extract_file_name(raw, default_name)
            sections.append(SplitSection(file_name=file_name, body=body, index=index))
        return sections

    def _extract_file_name(self, section: str, default_name: str) -> tuple[str, str]:
        if self._pattern is None:
            return default_name, section.strip()

        match = self._pattern.search(section)
        name = None
        if match is not None and FILE_NAME_GROUP in self._pattern.groupindex:
            name = match.group(FILE_NAME_GROUP)

        if not name:
            self.diagnostics.append(
                f'FileNamePattern "{self.settings.file_name_pattern}" did not match '
                f"in section. Using default: {default_name}"
            )
            return default_name, section.strip()

        if self.settings.remove_file_name:
            section = section.replace(match.group(0), "", 1)
        return name, section.strip()
