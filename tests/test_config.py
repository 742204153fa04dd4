"""Tests for skippy.config and skippy.toml."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import tomlkit

from skippy.config import (
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_NEVER_SKIP_PATTERNS,
    GLOBAL_TOOL,
    SkippyConfig,
    default_config,
    load_configs,
    resolve_configs,
)
from skippy.globs import GlobSyntaxError
from skippy.toml import get_config_tables


class TestSkippyConfig:
    """Tests for SkippyConfig construction."""

    def test_empty_by_default(self) -> None:
        config = SkippyConfig(tool="lint")

        assert config.include_patterns == frozenset()
        assert config.exclude_patterns == frozenset()
        assert config.never_skip_patterns == frozenset()
        assert not config.is_global

    def test_build_upon_defaults(self) -> None:
        config = SkippyConfig(
            tool="lint", build_upon_defaults=True, include_patterns={"**/lint.xml"}
        )

        assert config.include_patterns == DEFAULT_INCLUDE_PATTERNS | {"**/lint.xml"}
        assert config.never_skip_patterns == DEFAULT_NEVER_SKIP_PATTERNS

    def test_camel_case_keys(self) -> None:
        config = SkippyConfig.model_validate(
            {
                "tool": "unitTest",
                "includePatterns": ["**/*.kt"],
                "excludePatterns": ["**/generated/**"],
                "neverSkipPatterns": ["gradle.properties"],
            }
        )

        assert config.include_patterns == {"**/*.kt"}
        assert config.exclude_patterns == {"**/generated/**"}
        assert config.never_skip_patterns == {"gradle.properties"}

    def test_malformed_glob_fails_at_load(self) -> None:
        with pytest.raises(GlobSyntaxError, match="Missing ']'"):
            SkippyConfig(tool="lint", include_patterns={"[abc"})

    @pytest.mark.parametrize("tool", ["merged", "diagnostics"])
    def test_reserved_tool_names(self, tool: str) -> None:
        """Names of the runner's own output directories can't be tools."""
        with pytest.raises(ValueError, match=f"Tool name '{tool}' is reserved"):
            SkippyConfig(tool=tool, build_upon_defaults=True)

    def test_default_config(self) -> None:
        config = default_config()

        assert config.is_global
        assert config.tool == GLOBAL_TOOL
        assert config.include_patterns == DEFAULT_INCLUDE_PATTERNS

    def test_to_json_sorts_patterns(self) -> None:
        config = SkippyConfig(tool="lint", include_patterns={"b/**", "a/**"})

        data = json.loads(config.to_json())

        assert data["tool"] == "lint"
        assert data["includePatterns"] == ["a/**", "b/**"]
        assert data["excludePatterns"] == []


class TestOverlay:
    """Tests for SkippyConfig.overlay_with()."""

    def test_unions_every_pattern_set(self) -> None:
        global_config = SkippyConfig(
            tool=GLOBAL_TOOL,
            include_patterns={"**/*.kt"},
            exclude_patterns={"**/generated/**"},
            never_skip_patterns={"gradle.properties"},
        )
        lint = SkippyConfig(
            tool="lint",
            include_patterns={"**/lint-baseline.xml"},
            never_skip_patterns={"lint.xml"},
        )

        overlaid = lint.overlay_with(global_config)

        assert overlaid.tool == "lint"
        assert overlaid.include_patterns == {"**/*.kt", "**/lint-baseline.xml"}
        assert overlaid.exclude_patterns == {"**/generated/**"}
        assert overlaid.never_skip_patterns == {"gradle.properties", "lint.xml"}

    def test_idempotent(self) -> None:
        global_config = default_config()
        lint = SkippyConfig(tool="lint", include_patterns={"**/lint-baseline.xml"})

        once = lint.overlay_with(global_config)

        assert once.overlay_with(global_config) == once


class TestResolveConfigs:
    def test_single_config_used_as_is(self) -> None:
        config = SkippyConfig(tool="lint", include_patterns={"**/*.kt"})

        assert resolve_configs({"lint": config}) == [config]

    def test_global_is_layered_and_removed(self) -> None:
        configs = resolve_configs(
            {
                GLOBAL_TOOL: SkippyConfig(tool=GLOBAL_TOOL, include_patterns={"**/*.kt"}),
                "lint": SkippyConfig(tool="lint", include_patterns={"**/lint.xml"}),
                "unitTest": SkippyConfig(tool="unitTest"),
            }
        )

        assert [c.tool for c in configs] == ["lint", "unitTest"]
        assert configs[0].include_patterns == {"**/*.kt", "**/lint.xml"}
        assert configs[1].include_patterns == {"**/*.kt"}

    def test_missing_global(self) -> None:
        with pytest.raises(ValueError, match="No global config!"):
            resolve_configs(
                {"lint": SkippyConfig(tool="lint"), "unitTest": SkippyConfig(tool="unitTest")}
            )


class TestLoadConfigs:
    """Tests for load_configs()."""

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "skippy.json"
        path.write_text(
            json.dumps(
                [
                    {"tool": "global", "buildUponDefaults": True},
                    {"tool": "lint", "includePatterns": ["**/lint-baseline.xml"]},
                ]
            )
        )

        configs = load_configs(path)

        assert set(configs) == {"global", "lint"}
        assert configs["global"].include_patterns == DEFAULT_INCLUDE_PATTERNS
        assert configs["lint"].include_patterns == {"**/lint-baseline.xml"}

    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "skippy.toml"
        path.write_text(
            "[[config]]\n"
            'tool = "global"\n'
            "buildUponDefaults = true\n"
            "\n"
            "[[config]]\n"
            'tool = "lint"\n'
            'includePatterns = ["**/lint-baseline.xml"]\n'
            'excludePatterns = ["**/generated/**"]\n'
        )

        configs = load_configs(path)

        assert configs["global"].never_skip_patterns == DEFAULT_NEVER_SKIP_PATTERNS
        assert configs["lint"].exclude_patterns == {"**/generated/**"}

    def test_duplicate_tool(self, tmp_path: Path) -> None:
        path = tmp_path / "skippy.json"
        path.write_text(json.dumps([{"tool": "lint"}, {"tool": "lint"}]))

        with pytest.raises(ValueError, match="Duplicate config for tool 'lint'"):
            load_configs(path)

    def test_reserved_tool_name(self, tmp_path: Path) -> None:
        path = tmp_path / "skippy.json"
        path.write_text(
            json.dumps(
                [
                    {"tool": "global", "buildUponDefaults": True},
                    {"tool": "merged"},
                    {"tool": "lint", "includePatterns": ["**/lint-baseline.xml"]},
                ]
            )
        )

        with pytest.raises(ValueError, match="reserved"):
            load_configs(path)

    def test_malformed_glob(self, tmp_path: Path) -> None:
        path = tmp_path / "skippy.json"
        path.write_text(json.dumps([{"tool": "lint", "includePatterns": ["{a,b"]}]))

        with pytest.raises(GlobSyntaxError):
            load_configs(path)


class TestGetConfigTables:
    """Tests for get_config_tables()."""

    def test_top_level_tables(self) -> None:
        doc = tomlkit.parse('[[config]]\ntool = "global"\n')

        assert get_config_tables(doc) == [{"tool": "global"}]

    def test_pyproject_tables(self) -> None:
        doc = tomlkit.parse(
            '[project]\nname = "app"\n\n[[tool.skippy.config]]\ntool = "lint"\n'
        )

        assert get_config_tables(doc) == [{"tool": "lint"}]

    def test_missing(self) -> None:
        doc = tomlkit.parse('[project]\nname = "app"\n')

        assert get_config_tables(doc) == []

    def test_not_an_array(self) -> None:
        doc = tomlkit.parse('[config]\ntool = "global"\n')

        with pytest.raises(ValueError, match="array of tables"):
            get_config_tables(doc)
