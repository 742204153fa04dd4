"""Resolution of changed files to the modules that own them."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

DEFAULT_BUILD_MARKERS = ("build.gradle.kts", "build.gradle")


class ProjectNotFoundError(RuntimeError):
    """A changed file has no enclosing module below the repository root."""


class ProjectLocator:
    """Find the nearest enclosing module directory for changed files.

    A module is a directory holding one of the build marker files. Results
    are memoized per directory, so thousands of files in the same module
    only walk the tree once. A locator is meant to live for one computation;
    it is not safe to share across threads.

    Args:
        root_dir: Repository root. Changed paths are relative to it.
        markers: File names that mark a directory as a module.
    """

    def __init__(
        self, root_dir: Path, markers: Iterable[str] = DEFAULT_BUILD_MARKERS
    ) -> None:
        self.root_dir = Path(root_dir)
        self.markers = tuple(markers)
        self._cache: dict[Path, Path] = {}

    def find_owning_module(self, changed_path: str | Path) -> Path:
        """Return the absolute directory of the module owning ``changed_path``.

        A path that no longer exists (a deleted file) is resolved from its
        last known parent: if its module still exists, the deletion still
        affects that module's dependents.

        Raises:
            ProjectNotFoundError: If no ancestor below the repository root
                holds a build marker.
        """
        path = self.root_dir / changed_path
        if not path.exists() or path.is_file():
            current = path.parent
        elif path.is_dir():
            current = path
        else:
            raise ValueError(f"Unsupported file type: {path}")
        return self._find_nearest(changed_path, current)

    def _find_nearest(self, original: str | Path, current: Path) -> Path:
        visited: list[Path] = []
        while True:
            # A module dir is never the root itself, nor above it
            if current == self.root_dir or current == current.parent:
                raise ProjectNotFoundError(
                    f"Could not find {' or '.join(self.markers)} for {original}"
                )
            cached = self._cache.get(current)
            if cached is not None:
                found = cached
                break
            visited.append(current)
            if any((current / marker).exists() for marker in self.markers):
                found = current
                break
            current = current.parent

        for directory in visited:
            self._cache[directory] = found
        return found

    def project_key(self, module_dir: Path) -> str:
        """Convert a module directory into its module key."""
        return project_key(module_dir, self.root_dir)


def project_key(module_dir: Path, root_dir: Path) -> str:
    """Convert a module directory into a colon-delimited module key.

    Example:
        project_key(root / "libraries" / "foo", root) → ":libraries:foo"
    """
    relative = module_dir.relative_to(root_dir)
    return ":" + relative.as_posix().replace("/", ":")
