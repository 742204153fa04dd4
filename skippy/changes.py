"""Changed-file lists.

The computation consumes a newline-delimited file of repository-relative
paths, usually the files changed in a pull request. This module reads and
writes that file and can produce it from a git diff.
"""

from __future__ import annotations

import posixpath
import subprocess
from collections.abc import Iterable
from pathlib import Path


def normalize_path(path: str) -> str:
    """Normalize a changed path to a trimmed, ``/``-separated relative path.

    Examples:
        " app/src/../build.gradle " → "app/build.gradle"
        "app\\src\\Main.kt" → "app/src/Main.kt"
    """
    return posixpath.normpath(path.strip().replace("\\", "/"))


def read_changed_files(path: Path) -> list[str]:
    """Read a changed-files list, normalizing each path and skipping blanks."""
    return [
        normalize_path(line)
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def write_changed_files(paths: Iterable[str], dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text("\n".join(paths), encoding="utf-8")


def git(*args: str, cwd: Path | None = None) -> str:
    """Run a git command in ``cwd`` and return its stripped stdout.

    Raises:
        subprocess.CalledProcessError: If git exits non-zero.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def changed_files_from_git(
    base: str, head: str = "HEAD", repo_dir: Path | None = None
) -> list[str]:
    """List files changed between two git refs, relative to the repository root.

    Renames are reported as a deletion plus an addition, so the module that
    lost the file is affected too.

    Args:
        base: Ref to diff from, usually the merge base of a pull request.
        head: Ref to diff to.
        repo_dir: Any directory inside the repository. Defaults to the
            current directory.

    Raises:
        subprocess.CalledProcessError: If git fails (e.g. an unknown ref).
    """
    output = git("diff", "--name-only", "--no-renames", base, head, cwd=repo_dir)
    return [normalize_path(line) for line in output.splitlines() if line.strip()]
