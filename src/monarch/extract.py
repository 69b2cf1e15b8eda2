"""Move hand-written monitor declarations out of a compositor's main config.

``extract_monitors`` builds an :class:`ExtractionPlan` without touching the
disk; ``ExtractionPlan.apply`` performs the writes.  After applying, the main
config pulls the new file in with ``source =`` (Hyprland) or ``include``
(Sway), and monarch owns that file from then on.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .compositor import Compositor
from .utils import backup_file, read_text, write_text

log = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILENAMES = {
    Compositor.HYPRLAND: "monitors.conf",
    Compositor.SWAY: "outputs.conf",
}


class ExtractionError(Exception):
    """A labeled, user-facing failure of planning or applying an extraction."""


@dataclass
class ExtractionPlan:
    output_content: str
    main_config: Path
    output_filename: str
    modified_files: list[tuple[Path, str]] = field(default_factory=list)
    source_line: str | None = None
    source_exists: bool = False

    @property
    def has_monitors(self) -> bool:
        return bool(self.output_content)

    @property
    def output_path(self) -> Path:
        return self.main_config.parent / self.output_filename

    def apply(self) -> Path:
        """Write the output file, the trimmed files, then the directive.

        Each step raises :class:`ExtractionError` naming the file that failed;
        steps already done are left in place.
        """
        if not self.has_monitors:
            raise ExtractionError("No monitor configuration found to extract")

        output = self.output_path
        _write(output, self.output_content)

        backed_up = {output}
        for path, content in self.modified_files:
            _write(path, content, backup=path not in backed_up)
            backed_up.add(path)

        if self.source_line:
            try:
                content = self.main_config.read_text(encoding="utf-8")
            except OSError as e:
                raise ExtractionError(f"Failed to read {self.main_config}: {e}") from e
            if not content.endswith("\n"):
                content += "\n"
            content += f"\n{self.source_line}\n"
            _write(self.main_config, content, backup=self.main_config not in backed_up)

        log.info("Extracted monitor configuration to %s", output)
        return output


def _write(path: Path, content: str, *, backup: bool = True) -> None:
    try:
        if backup:
            backup_file(path)
        write_text(path, content)
    except OSError as e:
        raise ExtractionError(f"Failed to write {path}: {e}") from e


def resolve_path(base_dir: Path, path: str) -> Path:
    """Resolve a directive argument relative to the config directory."""
    p = Path(path.strip().strip('"')).expanduser()
    return p if p.is_absolute() else base_dir / p


def _same_file(a: Path, b: Path) -> bool:
    return os.path.normpath(a) == os.path.normpath(b)


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def _rejoin(lines: list[str], original: str) -> str:
    text = "\n".join(lines)
    if original.endswith("\n") and lines:
        text += "\n"
    return text


# ── Per-compositor line selection ────────────────────────────────────────

_HYPR_MONITOR_RE = re.compile(r"^monitor\s*=\s*([^,]*),")
_HYPR_WORKSPACE_RE = re.compile(r"^workspace\s*=.*\bmonitor:")
_HYPR_SOURCE_RE = re.compile(r"^source\s*=\s*(.+)$")

_SWAY_OUTPUT_RE = re.compile(r"^output\s+(\"[^\"]*\"|\S+)(.*)$")
_SWAY_WORKSPACE_RE = re.compile(r"^workspace\s+(?:number\s+)?\S+\s+output\s+\S")
_SWAY_INCLUDE_RE = re.compile(r"^include\s+(.+)$")

# Output subcommands monarch regenerates; anything else (bg, adaptive_sync,
# ...) stays where the user wrote it.
_SWAY_LAYOUT_WORDS = frozenset({
    "mode", "res", "resolution", "modeline",
    "pos", "position", "scale", "transform",
    "enable", "disable",
})


def _is_wildcard(name: str) -> bool:
    return name.strip().strip('"') in ("", "*")


def _take_hyprland(text: str) -> tuple[list[str], list[str]]:
    """Split lines into (monitor/workspace declarations, everything else).

    The catch-all rule (``monitor = , preferred, auto, 1``) names no output
    and is left in place.
    """
    taken: list[str] = []
    kept: list[str] = []
    for raw in text.splitlines():
        line = _strip_comment(raw)
        m = _HYPR_MONITOR_RE.match(line)
        if (m and not _is_wildcard(m.group(1))) or _HYPR_WORKSPACE_RE.match(line):
            taken.append(raw.strip())
        else:
            kept.append(raw)
    return taken, kept


def _sets_layout(line: str) -> bool:
    return any(word in _SWAY_LAYOUT_WORDS for word in line.replace("{", " ").split())


def _take_sway(text: str) -> tuple[list[str], list[str]]:
    """Like :func:`_take_hyprland`, but ``output`` blocks span several lines.

    Only layout subcommands of outputs named explicitly are taken.  A block
    mixing layout and other settings is split in two, the rest stays behind
    under the same header.
    """
    taken: list[str] = []
    kept: list[str] = []
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = _strip_comment(lines[i])
        m = _SWAY_OUTPUT_RE.match(line)
        if m and _is_wildcard(m.group(1)):
            m = None
        if m and line.count("{") > line.count("}"):
            header = lines[i]
            depth = line.count("{") - line.count("}")
            layout: list[str] = []
            other: list[str] = []
            closing = ""
            i += 1
            while i < len(lines) and depth > 0:
                inner = _strip_comment(lines[i])
                depth += inner.count("{") - inner.count("}")
                if depth <= 0:
                    closing = lines[i]
                elif not inner or _sets_layout(inner):
                    layout.append(lines[i].rstrip())
                else:
                    other.append(lines[i])
                i += 1
            if layout:
                taken.append("\n".join([header.strip(), *layout, closing.strip()]))
                if other:
                    kept.extend([header, *other, closing])
            else:
                kept.extend([header, *other, closing])
            continue
        if (m and _sets_layout(m.group(2))) or _SWAY_WORKSPACE_RE.match(line):
            taken.append(lines[i].strip())
        else:
            kept.append(lines[i])
        i += 1
    return taken, kept


@dataclass(frozen=True)
class _Dialect:
    directive_re: re.Pattern
    directive_fmt: str
    take: Callable[[str], tuple[list[str], list[str]]]


_DIALECTS: dict[Compositor, _Dialect] = {
    Compositor.HYPRLAND: _Dialect(_HYPR_SOURCE_RE, "source = {}", _take_hyprland),
    Compositor.SWAY: _Dialect(_SWAY_INCLUDE_RE, "include {}", _take_sway),
}


def extract_monitors(
    config_path: Path,
    compositor: Compositor,
    output_filename: str | None = None,
) -> ExtractionPlan:
    """Plan the extraction of monitor declarations from *config_path*.

    Declarations are collected from the main config and every file it pulls
    in (except the output file itself).  If the main config already pulls in
    the output file, no directive is added.
    """
    dialect = _DIALECTS.get(compositor)
    if dialect is None:
        raise ExtractionError(f"Config extraction not supported for {compositor.label}")

    try:
        main_text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ExtractionError(f"Failed to read {config_path}: {e}") from e

    filename = output_filename or DEFAULT_OUTPUT_FILENAMES[compositor]
    base = config_path.parent
    output_path = base / filename

    source_exists = False
    sources: list[Path] = []
    for raw in main_text.splitlines():
        m = dialect.directive_re.match(_strip_comment(raw))
        if not m:
            continue
        path = resolve_path(base, m.group(1))
        if _same_file(path, output_path):
            source_exists = True
        elif not any(_same_file(path, s) for s in sources):
            sources.append(path)

    extracted: list[str] = []
    modified: list[tuple[Path, str]] = []
    for path in [config_path, *sources]:
        text = main_text if path is config_path else read_text(path)
        if text is None:
            log.debug("Skipping unreadable source %s", path)
            continue
        taken, kept = dialect.take(text)
        if taken:
            extracted.extend(taken)
            modified.append((path, _rejoin(kept, text)))

    return ExtractionPlan(
        output_content="\n".join(extracted) + "\n" if extracted else "",
        main_config=config_path,
        output_filename=filename,
        modified_files=modified,
        source_line=None if source_exists else dialect.directive_fmt.format(filename),
        source_exists=source_exists,
    )
