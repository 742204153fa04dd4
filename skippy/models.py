"""Data models for skippy.

These Pydantic models represent the values that flow through an
affected-projects computation. All of them are frozen: they are built once
per run and shared read-only, including across threads.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .classify import (
    ANDROID_TEST_PATHS_GLOB,
    LINT_BASELINE_GLOB,
    TEST_PATHS_GLOB,
    UNIT_TEST_PATHS_GLOB,
    classify,
)
from .globs import compile_glob


class ChangedProject(BaseModel):
    """The changed files attributed to a single module.

    Use ChangedProject.create() to build one; it classifies the changed
    paths so the derived flags below are consistent with them.

    Attributes:
        path: Module directory, relative to the repository root.
        key: Module key (e.g. ":libraries:foo").
        changed_paths: Repository-relative paths of the changed files.
        test_paths: Changed files under a unit or instrumentation test tree.
        unit_test_paths: Changed files under a unit test tree.
        android_test_paths: Changed files under an instrumentation test tree.
        baseline_paths: Changed lint baseline files.
        dependent_affecting_paths: Everything else. These are the changes
            that can reach downstream modules.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    key: str
    changed_paths: frozenset[str]
    test_paths: frozenset[str] = frozenset()
    unit_test_paths: frozenset[str] = frozenset()
    android_test_paths: frozenset[str] = frozenset()
    baseline_paths: frozenset[str] = frozenset()
    dependent_affecting_paths: frozenset[str] = frozenset()

    @classmethod
    def create(cls, path: str, key: str, changed_paths: Iterable[str]) -> ChangedProject:
        changed = frozenset(changed_paths)
        tests, baselines, dependent_affecting = classify(
            changed, TEST_PATHS_GLOB, LINT_BASELINE_GLOB
        )
        unit_matcher = compile_glob(UNIT_TEST_PATHS_GLOB)
        android_matcher = compile_glob(ANDROID_TEST_PATHS_GLOB)
        return cls(
            path=path,
            key=key,
            changed_paths=changed,
            test_paths=tests,
            unit_test_paths=frozenset(p for p in tests if unit_matcher.matches(p)),
            android_test_paths=frozenset(
                p for p in tests if android_matcher.matches(p)
            ),
            baseline_paths=baselines,
            dependent_affecting_paths=dependent_affecting,
        )

    @property
    def only_tests_are_changed(self) -> bool:
        """All changed files are tests, so nothing downstream is affected."""
        return len(self.test_paths) == len(self.changed_paths)

    @property
    def only_unit_tests_are_changed(self) -> bool:
        """All changed files are unit tests.

        Instrumentation test runs for this module can be skipped.
        """
        return len(self.unit_test_paths) == len(self.changed_paths)

    @property
    def only_android_tests_are_changed(self) -> bool:
        return len(self.android_test_paths) == len(self.changed_paths)

    @property
    def only_lint_baseline_changed(self) -> bool:
        return len(self.baseline_paths) == len(self.changed_paths)

    @property
    def affects_dependents(self) -> bool:
        """Shorthand for whether dependent_affecting_paths is non-empty."""
        return bool(self.dependent_affecting_paths)


class DependencyMetadata(BaseModel):
    """Full dependency and dependent sets for every module in a graph.

    Both maps are transitive: projects_to_dependencies[a] holds every module
    ``a`` needs to build, and projects_to_dependents[b] holds every module
    that needs ``b``.
    """

    model_config = ConfigDict(frozen=True)

    projects_to_dependents: dict[str, frozenset[str]] = Field(default_factory=dict)
    projects_to_dependencies: dict[str, frozenset[str]] = Field(default_factory=dict)


class AffectedProjectsResult(BaseModel):
    """Output of a single affected-projects computation.

    Every collection is sorted lexicographically so that outputs written from
    it are stable across runs.

    Attributes:
        affected_projects: Modules that must be rebuilt and retested.
        focus_projects: Affected modules plus everything they depend on;
            the minimal set of modules needed to build them.
        affected_android_test_projects: Affected modules that produce
            instrumentation test artifacts whose non-unit-test sources changed.
    """

    model_config = ConfigDict(frozen=True)

    affected_projects: tuple[str, ...] = ()
    focus_projects: tuple[str, ...] = ()
    affected_android_test_projects: tuple[str, ...] = ()

    @field_validator(
        "affected_projects", "focus_projects", "affected_android_test_projects"
    )
    @classmethod
    def _sorted(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(sorted(set(value)))


class SerializableGraph(BaseModel):
    """Wire form of a DependencyGraph.

    Attributes:
        nodes: Every module key, including ones without any edges.
        edges: (dependent, dependency) pairs.
    """

    nodes: list[str] = Field(default_factory=list)
    edges: list[tuple[str, str]] = Field(default_factory=list)
