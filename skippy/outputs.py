"""Output and diagnostics files.

Each tool writes to its own directory under the outputs dir:

    <outputs>/<tool>/affected_projects.txt
    <outputs>/<tool>/affected_android_test_projects.txt
    <outputs>/<tool>/focus.settings.gradle
    <outputs>/<tool>/diagnostics/...        (debug mode only)

A tool whose computation hit a never-skip pattern writes no files at all;
consumers treat the missing files as "everything is affected". An existing
but empty file means nothing is affected.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .log import Logger

AFFECTED_PROJECTS_FILE_NAME = "affected_projects.txt"
AFFECTED_ANDROID_TEST_PROJECTS_FILE_NAME = "affected_android_test_projects.txt"
FOCUS_SETTINGS_FILE_NAME = "focus.settings.gradle"
DIAGNOSTICS_DIR_NAME = "diagnostics"
MERGED_TOOL = "merged"


class SkippyOutput(BaseModel):
    """File locations for one tool's outputs.

    Attributes:
        sub_dir: The tool-specific directory.
    """

    model_config = ConfigDict(frozen=True)

    sub_dir: Path

    @property
    def affected_projects_file(self) -> Path:
        return self.sub_dir / AFFECTED_PROJECTS_FILE_NAME

    @property
    def affected_android_test_projects_file(self) -> Path:
        return self.sub_dir / AFFECTED_ANDROID_TEST_PROJECTS_FILE_NAME

    @property
    def focus_file(self) -> Path:
        """A settings file including just the focus projects."""
        return self.sub_dir / FOCUS_SETTINGS_FILE_NAME

    @property
    def diagnostics_dir(self) -> Path:
        return self.sub_dir / DIAGNOSTICS_DIR_NAME


def prepare_output(tool: str, outputs_dir: Path) -> SkippyOutput:
    """Return the output locations for ``tool``, clearing any previous run."""
    output = SkippyOutput(sub_dir=outputs_dir / tool)
    if output.sub_dir.exists():
        shutil.rmtree(output.sub_dir)
    return output


def read_lines(path: Path) -> list[str]:
    return path.read_text().splitlines()


def write_lines(path: Path, lines: Iterable[str]) -> None:
    """Write newline-delimited lines, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines))


def focus_lines(projects: Iterable[str]) -> list[str]:
    """Render module keys as settings include lines.

    Example:
        focus_lines([":app"]) → ['include(":app")']
    """
    return [f'include("{project}")' for project in projects]


class DiagnosticWriter:
    """Writes named diagnostic dumps. The base class discards them.

    Content is passed as a callable so that expensive dumps are only
    rendered when they will actually be written.
    """

    def write(self, name: str, content: Callable[[], str]) -> None:
        pass


NO_OP_DIAGNOSTICS = DiagnosticWriter()


class DirectoryDiagnosticWriter(DiagnosticWriter):
    """Writes diagnostic dumps as files in a directory."""

    def __init__(self, directory: Path, logger: Logger) -> None:
        self.directory = directory
        self.logger = logger
        directory.mkdir(parents=True, exist_ok=True)

    def write(self, name: str, content: Callable[[], str]) -> None:
        path = self.directory / name
        self.logger.info(f"writing diagnostic file: {path}")
        path.write_text(content())


def format_project_map(mapping: dict[str, Iterable[str]]) -> str:
    """Render a module → modules map as a sorted, indented text dump."""
    lines: list[str] = []
    for project in sorted(mapping):
        lines.append(project)
        lines.extend(f"-> {dep}" for dep in sorted(mapping[project]))
    return "".join(f"{line}\n" for line in lines)
