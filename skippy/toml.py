"""TOML config documents.

Uses tomlkit so config files can be read from the same TOML documents
(including a repository's pyproject.toml) that other tools edit in place.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit


def load_document(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a TOML file."""
    return tomlkit.parse(path.read_text())


def get_config_tables(doc: tomlkit.TOMLDocument) -> list[dict[str, Any]]:
    """Extract skippy config tables from a TOML document.

    Looks in two places, in order:
    - top-level ``[[config]]`` tables (a dedicated skippy.toml)
    - ``[[tool.skippy.config]]`` tables (a pyproject.toml)

    Returns plain Python dicts, one per table, ready for model validation.
    """
    data = doc.unwrap()
    tables = data.get("config")
    if tables is None:
        tables = data.get("tool", {}).get("skippy", {}).get("config", [])
    if not isinstance(tables, list):
        raise ValueError("'config' must be an array of tables ([[config]])")
    return tables
