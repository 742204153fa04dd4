"""Tests for skippy.locator."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from skippy.locator import ProjectLocator, ProjectNotFoundError, project_key

ModuleFactory = Callable[..., Path]


class TestFindOwningModule:
    """Tests for ProjectLocator.find_owning_module()."""

    def test_existing_file(self, repo_root: Path, make_module: ModuleFactory) -> None:
        foo = make_module("foo", files={"src/main/kotlin/Example.kt": "class Example"})
        locator = ProjectLocator(repo_root)

        assert locator.find_owning_module("foo/src/main/kotlin/Example.kt") == foo

    def test_deleted_file(self, repo_root: Path, make_module: ModuleFactory) -> None:
        """Deleted files resolve through their nearest surviving ancestor."""
        foo = make_module("foo")
        locator = ProjectLocator(repo_root)

        assert locator.find_owning_module("foo/src/gone/dir/Deleted.kt") == foo

    def test_directory(self, repo_root: Path, make_module: ModuleFactory) -> None:
        foo = make_module("foo", files={"src/main/kotlin/Example.kt": ""})
        locator = ProjectLocator(repo_root)

        assert locator.find_owning_module("foo/src") == foo

    def test_nearest_module_wins(
        self, repo_root: Path, make_module: ModuleFactory
    ) -> None:
        make_module("foo")
        nested = make_module("foo/bar", files={"src/main/kotlin/Bar.kt": ""}, kts=True)
        locator = ProjectLocator(repo_root)

        assert locator.find_owning_module("foo/bar/src/main/kotlin/Bar.kt") == nested

    def test_file_in_root(self, repo_root: Path) -> None:
        """The root build script does not make the root a module."""
        locator = ProjectLocator(repo_root)

        with pytest.raises(ProjectNotFoundError, match="Example.kt"):
            locator.find_owning_module("Example.kt")

    def test_no_module_below_root(self, repo_root: Path) -> None:
        (repo_root / "docs").mkdir()
        (repo_root / "docs" / "readme.md").write_text("")
        locator = ProjectLocator(repo_root)

        with pytest.raises(ProjectNotFoundError, match="docs/readme.md"):
            locator.find_owning_module("docs/readme.md")

    def test_results_are_cached(self, repo_root: Path, make_module: ModuleFactory) -> None:
        """Directories resolved once are not walked again."""
        foo = make_module("foo")
        locator = ProjectLocator(repo_root)
        assert locator.find_owning_module("foo/src/main/kotlin/A.kt") == foo

        (foo / "build.gradle").unlink()

        assert locator.find_owning_module("foo/src/main/kotlin/B.kt") == foo
        with pytest.raises(ProjectNotFoundError):
            ProjectLocator(repo_root).find_owning_module("foo/src/main/kotlin/B.kt")

    def test_custom_markers(self, repo_root: Path) -> None:
        module = repo_root / "svc"
        module.mkdir()
        (module / "BUILD").write_text("")
        locator = ProjectLocator(repo_root, markers=("BUILD",))

        assert locator.find_owning_module("svc/main.py") == module


class TestProjectKey:
    def test_nested(self, repo_root: Path) -> None:
        assert project_key(repo_root / "libraries" / "foo", repo_root) == ":libraries:foo"

    def test_locator_method(self, repo_root: Path) -> None:
        assert ProjectLocator(repo_root).project_key(repo_root / "app") == ":app"
