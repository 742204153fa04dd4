"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

ModuleFactory = Callable[..., Path]


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Create a repository root with root build and settings scripts."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "build.gradle").write_text("buildscript { repositories { mavenCentral() } }")
    (root / "settings.gradle").write_text("")
    return root


@pytest.fixture
def make_module(repo_root: Path) -> ModuleFactory:
    """Return a factory that creates a module under the repository root.

    Usage:
        make_module("libraries/foo", files={"src/main/kotlin/Foo.kt": "class Foo"})
    """

    def factory(
        path: str,
        files: dict[str, str] | None = None,
        kts: bool = False,
    ) -> Path:
        module_dir = repo_root / path
        module_dir.mkdir(parents=True, exist_ok=True)
        build_file = "build.gradle.kts" if kts else "build.gradle"
        (module_dir / build_file).write_text("plugins { }")
        for name, content in (files or {}).items():
            file = module_dir / name
            file.parent.mkdir(parents=True, exist_ok=True)
            file.write_text(content)
        settings = repo_root / "settings.gradle"
        key = ":" + path.replace("/", ":")
        settings.write_text(settings.read_text() + f'\ninclude("{key}")')
        return module_dir

    return factory
