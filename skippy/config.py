"""Per-tool include, exclude and never-skip glob configuration.

Each tool (lint, unit tests, ...) can declare its own patterns on top of a
single global config. Layering is always a union: a tool config can widen
what counts as a relevant change but never narrow the global baseline.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)

from .globs import compile_glob
from .outputs import DIAGNOSTICS_DIR_NAME, MERGED_TOOL
from .toml import get_config_tables, load_document

GLOBAL_TOOL = "global"
RESERVED_TOOL_NAMES = frozenset({MERGED_TOOL, DIAGNOSTICS_DIR_NAME})

DEFAULT_INCLUDE_PATTERNS = frozenset(
    {
        "**/*.kt",
        "*.gradle",
        "**/*.gradle",
        "*.gradle.kts",
        "**/*.gradle.kts",
        "**/*.java",
        "**/AndroidManifest.xml",
        "**/res/**",
        "**/src/*/resources/**",
        "gradle.properties",
        "**/gradle.properties",
    }
)

DEFAULT_NEVER_SKIP_PATTERNS = frozenset(
    {
        # Root build and settings scripts
        "*.gradle.kts",
        "*.gradle",
        "gradle.properties",
        # Version catalogs
        "**/*.versions.toml",
        # Wrapper
        "**/gradle/wrapper/**",
        "gradle/wrapper/**",
        "gradlew",
        "gradlew.bat",
        "**/gradlew",
        "**/gradlew.bat",
        "buildSrc/**",
        # CI
        ".github/workflows/**",
    }
)


def _patterns_field(name: str, alias: str) -> Any:
    return Field(
        default_factory=frozenset,
        validation_alias=AliasChoices(alias, name),
        serialization_alias=alias,
    )


class SkippyConfig(BaseModel):
    """Glob configuration for one tool.

    Attributes:
        tool: Tool name. GLOBAL_TOOL marks the config every other one builds on.
        build_upon_defaults: Union the default include and never-skip
            patterns into this config.
        include_patterns: Globs for files that participate in builds. Only
            changed files matching one of these are considered.
        exclude_patterns: Globs for files to ignore even if included.
        never_skip_patterns: Globs for files whose change means nothing can
            be skipped (root build scripts, version catalogs, CI workflows).

    Every pattern is compiled during validation, so a malformed glob raises
    GlobSyntaxError when the config is loaded.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tool: str
    build_upon_defaults: bool = Field(
        default=False,
        validation_alias=AliasChoices("buildUponDefaults", "build_upon_defaults"),
        serialization_alias="buildUponDefaults",
    )
    include_patterns: frozenset[str] = _patterns_field("include_patterns", "includePatterns")
    exclude_patterns: frozenset[str] = _patterns_field("exclude_patterns", "excludePatterns")
    never_skip_patterns: frozenset[str] = _patterns_field(
        "never_skip_patterns", "neverSkipPatterns"
    )

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if not (data.get("buildUponDefaults") or data.get("build_upon_defaults")):
            return data
        data = dict(data)
        for name, alias, defaults in (
            ("include_patterns", "includePatterns", DEFAULT_INCLUDE_PATTERNS),
            ("never_skip_patterns", "neverSkipPatterns", DEFAULT_NEVER_SKIP_PATTERNS),
        ):
            key = alias if alias in data else name
            data[key] = set(data.get(key, ())) | defaults
        return data

    @field_validator("tool")
    @classmethod
    def _check_tool(cls, tool: str) -> str:
        # Tool names become output directories next to the runner's own
        if tool in RESERVED_TOOL_NAMES:
            raise ValueError(
                f"Tool name {tool!r} is reserved; pick a name other than "
                f"{', '.join(sorted(RESERVED_TOOL_NAMES))}"
            )
        return tool

    @field_validator("include_patterns", "exclude_patterns", "never_skip_patterns")
    @classmethod
    def _compile_patterns(cls, patterns: frozenset[str]) -> frozenset[str]:
        for pattern in patterns:
            compile_glob(pattern)
        return patterns

    @field_serializer("include_patterns", "exclude_patterns", "never_skip_patterns")
    def _serialize_patterns(self, patterns: frozenset[str]) -> list[str]:
        return sorted(patterns)

    @property
    def is_global(self) -> bool:
        return self.tool == GLOBAL_TOOL

    def overlay_with(self, other: SkippyConfig) -> SkippyConfig:
        """Return a copy of this config with ``other``'s patterns unioned in."""
        return self.model_copy(
            update={
                "include_patterns": self.include_patterns | other.include_patterns,
                "exclude_patterns": self.exclude_patterns | other.exclude_patterns,
                "never_skip_patterns": self.never_skip_patterns
                | other.never_skip_patterns,
            }
        )

    def to_json(self) -> str:
        """Render as indented JSON with sorted patterns, for diagnostics."""
        return self.model_dump_json(by_alias=True, indent=2)


def default_config() -> SkippyConfig:
    """The global config built upon the default patterns."""
    return SkippyConfig(tool=GLOBAL_TOOL, build_upon_defaults=True)


def resolve_configs(config_map: Mapping[str, SkippyConfig]) -> list[SkippyConfig]:
    """Layer the global config onto every tool config.

    A lone config (normally the global one) is used as-is. With several,
    the global config is removed and overlaid onto each of the others.

    Raises:
        ValueError: If there are several configs and none is global.
    """
    if len(config_map) == 1:
        return list(config_map.values())

    configs = dict(config_map)
    global_config = configs.pop(GLOBAL_TOOL, None)
    if global_config is None:
        raise ValueError("No global config!")
    return [config.overlay_with(global_config) for config in configs.values()]


_CONFIG_LIST = TypeAdapter(list[SkippyConfig])


def load_configs(path: Path) -> dict[str, SkippyConfig]:
    """Load tool configs from a JSON or TOML file.

    JSON files hold a list of config objects. TOML files hold ``[[config]]``
    (or ``[[tool.skippy.config]]``) tables.

    Returns:
        Map of tool name → SkippyConfig.

    Raises:
        ValueError: If two configs share a tool name.
        GlobSyntaxError: If any pattern is malformed.
    """
    if path.suffix == ".toml":
        configs = _CONFIG_LIST.validate_python(get_config_tables(load_document(path)))
    else:
        configs = _CONFIG_LIST.validate_python(json.loads(path.read_text()))

    by_tool: dict[str, SkippyConfig] = {}
    for config in configs:
        if config.tool in by_tool:
            raise ValueError(f"Duplicate config for tool {config.tool!r} in {path}")
        by_tool[config.tool] = config
    return by_tool
