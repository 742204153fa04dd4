"""Run the affected-projects computation for every configured tool.

This module orchestrates a full run:
1. Clear the outputs directory
2. Layer the global config onto each tool config
3. Read the changed files and resolve the dependency graph, once
4. Compute affected projects per tool, in parallel
5. Optionally merge all tools' outputs into a single ``merged`` output

Per-tool computations share the graph metadata and changed-file list by
reference; neither is mutated after it is built, so the threads share no
mutable state.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Collection, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .changes import read_changed_files
from .computer import AffectedProjectsComputer
from .config import SkippyConfig, resolve_configs
from .graph import DependencyGraph
from .log import LOG_PREFIX, prefixed, timed, verbose
from .models import DependencyMetadata
from .outputs import (
    DIAGNOSTICS_DIR_NAME,
    MERGED_TOOL,
    NO_OP_DIAGNOSTICS,
    DiagnosticWriter,
    DirectoryDiagnosticWriter,
    SkippyOutput,
    focus_lines,
    format_project_map,
    prepare_output,
    read_lines,
    write_lines,
)

logger = logging.getLogger(__name__)


class SkippyRunner:
    """Compute and write affected-project outputs for a set of tool configs.

    Args:
        outputs_dir: Directory to write outputs to. Cleared on every run.
        root_dir: Repository root.
        dependency_graph: Module dependency graph.
        changed_files_path: Newline-delimited list of changed files.
        config_map: Map of tool name → SkippyConfig, including the global one.
        android_test_projects: Modules producing instrumentation test artifacts.
        parallelism: Maximum number of tools computed at once. Defaults to one
            worker per tool; 1 computes sequentially in the calling thread.
        debug: Write diagnostics and log progress at INFO.
        merge_outputs: Also write the union of all tools' outputs to a
            ``merged`` output.

    Raises:
        FileNotFoundError: If root_dir or changed_files_path does not exist.
    """

    def __init__(
        self,
        outputs_dir: Path,
        root_dir: Path,
        dependency_graph: DependencyGraph,
        changed_files_path: Path,
        config_map: Mapping[str, SkippyConfig],
        android_test_projects: Collection[str] = frozenset(),
        parallelism: int | None = None,
        debug: bool = False,
        merge_outputs: bool = True,
    ) -> None:
        if not Path(root_dir).exists():
            raise FileNotFoundError(f"rootDir does not exist: {root_dir}")
        if not Path(changed_files_path).exists():
            raise FileNotFoundError(f"changedFilesPath does not exist: {changed_files_path}")
        self.outputs_dir = Path(outputs_dir)
        self.root_dir = Path(root_dir)
        self.dependency_graph = dependency_graph
        self.changed_files_path = Path(changed_files_path)
        self.config_map = dict(config_map)
        self.android_test_projects = frozenset(android_test_projects)
        self.parallelism = parallelism
        self.debug = debug
        self.merge_outputs = merge_outputs

    def _log(self, tool: str, message: str) -> None:
        verbose(logger, self.debug)(f"{LOG_PREFIX}[{tool}] {message}")

    def run(self) -> dict[str, SkippyOutput | None]:
        """Run every tool and write outputs.

        Returns:
            Map of tool name → its outputs, or None for tools where a
            never-skip pattern matched and no outputs were written.
        """
        if self.outputs_dir.exists():
            shutil.rmtree(self.outputs_dir)
        self.outputs_dir.mkdir(parents=True)

        configs = resolve_configs(self.config_map)

        with timed(lambda m: self._log("diagnostics", m), "reading changed files"):
            self._log("diagnostics", f"reading changed files from: {self.changed_files_path}")
            changed_files = read_changed_files(self.changed_files_path)

        diagnostics: DiagnosticWriter = NO_OP_DIAGNOSTICS
        if self.debug:
            diagnostics = DirectoryDiagnosticWriter(
                self.outputs_dir / DIAGNOSTICS_DIR_NAME, prefixed(logger, "diagnostics")
            )

        graph = self.dependency_graph
        diagnostics.write(
            "shallowProjectsToDependencies.txt",
            lambda: format_project_map(graph.shallow_dependencies()),
        )
        with timed(lambda m: self._log("diagnostics", m), "computing dependency metadata"):
            metadata = graph.metadata()
        diagnostics.write(
            "projectsToDependencies.txt",
            lambda: format_project_map(metadata.projects_to_dependencies),
        )
        diagnostics.write(
            "projectsToDependents.txt",
            lambda: format_project_map(metadata.projects_to_dependents),
        )

        def compute(config: SkippyConfig) -> SkippyOutput | None:
            return self._compute_for_tool(config, metadata, changed_files)

        parallelism = self.parallelism or len(configs)
        if parallelism <= 1 or len(configs) <= 1:
            results = [compute(config) for config in configs]
        else:
            logger.info(f"{LOG_PREFIX} Running {len(configs)} configs with parallelism {parallelism}")
            with ThreadPoolExecutor(
                max_workers=parallelism, thread_name_prefix="skippy"
            ) as executor:
                results = list(executor.map(compute, configs))

        outputs = {config.tool: result for config, result in zip(configs, results)}
        if self.merge_outputs:
            self._merge(outputs)
        return outputs

    def _compute_for_tool(
        self,
        config: SkippyConfig,
        metadata: DependencyMetadata,
        changed_files: list[str],
    ) -> SkippyOutput | None:
        tool = config.tool
        output = prepare_output(tool, self.outputs_dir)
        tool_logger = prefixed(logger, tool)
        diagnostics: DiagnosticWriter = NO_OP_DIAGNOSTICS
        if self.debug:
            diagnostics = DirectoryDiagnosticWriter(output.diagnostics_dir, tool_logger)

        with timed(lambda m: self._log(tool, m), "SkippyRunner computation"):
            diagnostics.write("config.json", config.to_json)

            result = AffectedProjectsComputer(
                root_dir=self.root_dir,
                dependency_metadata=metadata,
                changed_file_paths=changed_files,
                config=config,
                android_test_projects=self.android_test_projects,
                diagnostics=diagnostics,
                debug=self.debug,
                logger=tool_logger,
            ).compute()
            if result is None:
                return None

            self._log(tool, f"writing affected projects to: {output.affected_projects_file}")
            write_lines(output.affected_projects_file, result.affected_projects)

            self._log(
                tool,
                "writing affected androidTest projects to: "
                f"{output.affected_android_test_projects_file}",
            )
            write_lines(
                output.affected_android_test_projects_file,
                result.affected_android_test_projects,
            )

            self._log(tool, f"writing focus settings to: {output.focus_file}")
            write_lines(output.focus_file, focus_lines(result.focus_projects))

        return output

    def _merge(self, outputs: Mapping[str, SkippyOutput | None]) -> None:
        """Write the union of every tool's outputs to the merged output.

        The merged directory is always reset. If any tool hit a never-skip
        pattern, nothing can be skipped for the merged output either, so no
        files are written.
        """
        merged = prepare_output(MERGED_TOOL, self.outputs_dir)
        if any(output is None for output in outputs.values()):
            return

        tool_outputs = [output for output in outputs.values() if output is not None]

        def union(files: list[Path]) -> list[str]:
            lines: set[str] = set()
            for file in files:
                lines.update(read_lines(file))
            return sorted(lines)

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="skippy-merge") as executor:
            affected = executor.submit(
                union, [o.affected_projects_file for o in tool_outputs]
            )
            android_tests = executor.submit(
                union, [o.affected_android_test_projects_file for o in tool_outputs]
            )
            focus = executor.submit(union, [o.focus_file for o in tool_outputs])

            write_lines(merged.affected_projects_file, affected.result())
            write_lines(merged.affected_android_test_projects_file, android_tests.result())
            write_lines(merged.focus_file, focus.result())
