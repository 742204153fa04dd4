"""Classification of a module's changed files.

Changes confined to test sources or lint baselines stay local to their
module: tests and baselines never ship in an artifact, so downstream modules
cannot observe them. Everything else is assumed to reach dependents.
"""

from __future__ import annotations

from collections.abc import Iterable

from .globs import compile_glob

# Unit test trees, including snapshot trees under src/test/snapshots/**
UNIT_TEST_PATHS_GLOB = "**/src/test*/**"
ANDROID_TEST_PATHS_GLOB = "**/src/androidTest*/**"
TEST_PATHS_GLOB = "**/src/{test,androidTest}*/**"
LINT_BASELINE_GLOB = "**/lint-baseline.xml"


def classify(
    changed_paths: Iterable[str],
    test_glob: str = TEST_PATHS_GLOB,
    baseline_glob: str = LINT_BASELINE_GLOB,
) -> tuple[frozenset[str], frozenset[str], frozenset[str]]:
    """Partition changed paths by the kind of change they represent.

    Args:
        changed_paths: Repository-relative paths changed in one module.
        test_glob: Glob matching files in test source trees.
        baseline_glob: Glob matching lint baseline files.

    Returns:
        Tuple of (test paths, baseline paths, dependent-affecting paths).
        The last is whatever remains after removing the first two.
    """
    changed = frozenset(changed_paths)
    test_matcher = compile_glob(test_glob)
    baseline_matcher = compile_glob(baseline_glob)

    tests = frozenset(p for p in changed if test_matcher.matches(p))
    baselines = frozenset(p for p in changed if baseline_matcher.matches(p))
    return tests, baselines, changed - tests - baselines
