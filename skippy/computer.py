"""Affected-projects computation.

Computes the set of modules affected by a set of changed files. This runs as
a preflight step on pull requests so that CI only runs the checks a change
can actually influence.

The pipeline:
1. Merge the include patterns with the never-skip patterns
2. Keep only changed files matching an include pattern, then drop those
   matching an exclude pattern
3. If any remaining file matches a never-skip pattern, stop: everything
   is affected
4. Attribute each remaining file to the module that owns it
5. A changed module is affected; unless its changes are confined to tests
   or lint baselines, all of its transitive dependents are affected too
6. The focus set is every affected module plus its transitive dependencies

Never under-report: a missed module means a change ships untested.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from pathlib import Path

from .config import SkippyConfig, default_config
from .globs import PathMatcher, compile_glob
from .locator import DEFAULT_BUILD_MARKERS, ProjectLocator
from .log import Logger, timed, verbose
from .models import AffectedProjectsResult, ChangedProject, DependencyMetadata
from .outputs import NO_OP_DIAGNOSTICS, DiagnosticWriter

logger = logging.getLogger(__name__)


class AffectedProjectsComputer:
    """Compute affected and focus projects for one tool config.

    Args:
        root_dir: Repository root. Changed paths are relative to it.
        dependency_metadata: Full dependency/dependent sets for every module.
            Shared read-only; computed once per run.
        changed_file_paths: Normalized, repository-relative changed paths.
        config: Include/exclude/never-skip patterns to apply.
        android_test_projects: Modules producing instrumentation test
            artifacts. Affected ones are reported separately so CI can tell
            whether an instrumentation test pipeline needs to run at all.
        diagnostics: Where debug dumps go.
        debug: Log progress at INFO and check never-skip patterns
            exhaustively so every match can be reported.
        logger: Logger to use, typically prefixed with the tool name.
        build_markers: File names that mark a directory as a module.
    """

    def __init__(
        self,
        root_dir: Path,
        dependency_metadata: DependencyMetadata,
        changed_file_paths: Sequence[str],
        config: SkippyConfig | None = None,
        android_test_projects: Collection[str] = frozenset(),
        diagnostics: DiagnosticWriter = NO_OP_DIAGNOSTICS,
        debug: bool = False,
        logger: Logger = logger,
        build_markers: Iterable[str] = DEFAULT_BUILD_MARKERS,
    ) -> None:
        self.root_dir = Path(root_dir)
        self.dependency_metadata = dependency_metadata
        self.changed_file_paths = changed_file_paths
        self.config = config if config is not None else default_config()
        self.android_test_projects = android_test_projects
        self.diagnostics = diagnostics
        self.debug = debug
        self.logger = logger
        self.build_markers = tuple(build_markers)
        self._log = verbose(logger, debug)

    def compute(self) -> AffectedProjectsResult | None:
        """Run the computation.

        Returns:
            The affected and focus projects, or None if a never-skip pattern
            matched and nothing may be skipped.

        Raises:
            FileNotFoundError: If the root directory does not exist.
            ProjectNotFoundError: If a changed file has no owning module.
        """
        with timed(self._log, f"full computation of {self.config.tool}"):
            return self._compute()

    def _compute(self) -> AffectedProjectsResult | None:
        config = self.config
        self._log(f"root dir path is: {self.root_dir}")
        if not self.root_dir.exists():
            raise FileNotFoundError(f"Root dir path {self.root_dir} does not exist")
        self._log(f"changed_file_paths: {list(self.changed_file_paths)}")

        # Anything that must never be skipped is relevant by definition, so
        # it has to survive the include filter to be checked below.
        merged_include_patterns = config.include_patterns | config.never_skip_patterns
        self._log(f"merged_include_patterns: {sorted(merged_include_patterns)}")

        with timed(self._log, "filtering changed files with includes"):
            included = self.filter_includes(self.changed_file_paths, merged_include_patterns)
        self._log(f"included_changed_file_paths: {included}")

        with timed(self._log, "filtering changed files with excludes"):
            filtered = self.filter_excludes(included, config.exclude_patterns)
        self._log(f"filtered_changed_file_paths: {filtered}")

        with timed(self._log, "creating path matchers"):
            never_skip_matchers = [compile_glob(p) for p in sorted(config.never_skip_patterns)]
        self._log(f"never_skip_patterns: {sorted(config.never_skip_patterns)}")

        if self.debug:
            with timed(self._log, "checking for non-skippable files"):
                matches = self.any_never_skip_debug(filtered, never_skip_matchers)
            matched = {path: m.pattern for path, m in matches.items() if m is not None}
            if matched:
                self.logger.info(f"Never-skip pattern(s) matched: {matched}.")
                return None
        elif self.any_never_skip(filtered, never_skip_matchers):
            self.logger.info("Never-skip pattern(s) matched.")
            return None

        with timed(self._log, "computing changed projects"):
            changed_projects = self._changed_projects(filtered)
        self.diagnostics.write(
            "changedProjects.txt", lambda: _format_changed_projects(changed_projects)
        )

        projects_to_dependents = self.dependency_metadata.projects_to_dependents
        affected: set[str] = set()
        for key, change in changed_projects.items():
            affected.add(key)
            if change.affects_dependents:
                affected.update(projects_to_dependents.get(key, ()))
        self.logger.info(f"Found {len(affected)} affected projects.")

        projects_to_dependencies = self.dependency_metadata.projects_to_dependencies
        focus: set[str] = set()
        for project in affected:
            focus.add(project)
            focus.update(projects_to_dependencies.get(project, ()))

        # A module whose only changes are unit tests has no instrumentation
        # tests to rerun.
        affected_android_test_projects = {
            project
            for project in affected
            if project in self.android_test_projects
            and not (
                project in changed_projects
                and changed_projects[project].only_unit_tests_are_changed
            )
        }

        return AffectedProjectsResult(
            affected_projects=sorted(affected),
            focus_projects=sorted(focus),
            affected_android_test_projects=sorted(affected_android_test_projects),
        )

    def _changed_projects(self, paths: Iterable[str]) -> dict[str, ChangedProject]:
        """Group changed paths by owning module.

        The locator's directory cache lives only as long as this call.
        """
        locator = ProjectLocator(self.root_dir, self.build_markers)
        by_module: dict[Path, list[str]] = {}
        for path in paths:
            by_module.setdefault(locator.find_owning_module(path), []).append(path)

        changed: dict[str, ChangedProject] = {}
        for module_dir, files in by_module.items():
            key = locator.project_key(module_dir)
            changed[key] = ChangedProject.create(
                path=module_dir.relative_to(self.root_dir).as_posix(),
                key=key,
                changed_paths=files,
            )
        return changed

    @staticmethod
    def filter_includes(
        file_paths: Iterable[str], include_patterns: Iterable[str]
    ) -> list[str]:
        """Return the paths matching at least one include pattern."""
        matchers = [compile_glob(p) for p in include_patterns]
        return [path for path in file_paths if any(m.matches(path) for m in matchers)]

    @staticmethod
    def filter_excludes(
        file_paths: Iterable[str], exclude_patterns: Iterable[str]
    ) -> list[str]:
        """Return the paths matching none of the exclude patterns."""
        matchers = [compile_glob(p) for p in exclude_patterns]
        return [path for path in file_paths if not any(m.matches(path) for m in matchers)]

    @staticmethod
    def any_never_skip(
        file_paths: Iterable[str], never_skip_matchers: Sequence[PathMatcher]
    ) -> bool:
        """Return whether any path matches any never-skip matcher.

        Stops at the first match.
        """
        return any(
            matcher.matches(path) for path in file_paths for matcher in never_skip_matchers
        )

    @staticmethod
    def any_never_skip_debug(
        file_paths: Iterable[str], never_skip_matchers: Sequence[PathMatcher]
    ) -> dict[str, PathMatcher | None]:
        """Map every path to the first never-skip matcher it matches, if any.

        Slower than any_never_skip() since it checks every path, but it can
        report which pattern caught which file.
        """
        return {
            path: next((m for m in never_skip_matchers if m.matches(path)), None)
            for path in file_paths
        }


def _format_changed_projects(changed_projects: dict[str, ChangedProject]) -> str:
    blocks: list[str] = []
    for key in sorted(changed_projects):
        change = changed_projects[key]
        header = key
        if change.only_tests_are_changed:
            header += " (tests only)"
        if change.only_android_tests_are_changed:
            header += " (androidTest only)"
        if change.only_lint_baseline_changed:
            header += " (lint-baseline.xml only)"
        lines = [header, *(f"-- {path}" for path in sorted(change.changed_paths))]
        blocks.append("\n".join(lines))
    return "\n".join(blocks)
