"""Glob to regular expression translation.

Globs follow the dialect build tools use for path matching:

- ``*`` matches any run of characters within one path segment
- ``**`` matches across segment boundaries, at any depth
- ``?`` matches a single character other than ``/``
- ``[abc]``, ``[a-z]``, ``[!abc]`` and ``[^abc]`` are character classes
- ``{a,b,c}`` is an alternation group (groups cannot nest)
- ``\\`` escapes the next character

Patterns are anchored: they must match the whole path, not a substring.
Translation happens once up front and matching is delegated to ``re``, so
malformed patterns fail when they are compiled rather than when a path is
first checked against them.
"""

from __future__ import annotations

import functools
import os
import re

_REGEX_META_CHARS = ".^$+{[]|()"
_GLOB_META_CHARS = "\\*?[{"
# Characters that ``re`` would read as nested sets or set operations.
_CLASS_ESCAPES = "\\[&~|"
_EOL = ""


class GlobSyntaxError(Exception):
    """A glob pattern could not be translated.

    Attributes:
        description: What is wrong with the pattern.
        pattern: The offending glob.
        index: Position in ``pattern`` where the problem was detected.
    """

    def __init__(self, description: str, pattern: str, index: int) -> None:
        self.description = description
        self.pattern = pattern
        self.index = index
        super().__init__(
            f"{description} near index {index}\n{pattern}\n{' ' * index}^"
        )


def _next(glob: str, i: int) -> str:
    return glob[i] if i < len(glob) else _EOL


def to_regex_pattern(glob: str) -> str:
    """Translate a glob into an anchored regular expression.

    Raises:
        GlobSyntaxError: If the glob is malformed.

    Example:
        to_regex_pattern("**/*.kt") → "^.*/[^/]*\\.kt$"
    """
    in_group = False
    regex = ["^"]
    i = 0
    while i < len(glob):
        c = glob[i]
        i += 1
        if c == "\\":
            if i == len(glob):
                raise GlobSyntaxError("No character to escape", glob, i - 1)
            nxt = glob[i]
            i += 1
            if nxt in _GLOB_META_CHARS or nxt in _REGEX_META_CHARS:
                regex.append("\\")
            regex.append(nxt)
        elif c == "[":
            i = _translate_class(glob, i, regex)
        elif c == "{":
            if in_group:
                raise GlobSyntaxError("Cannot nest groups", glob, i - 1)
            regex.append("(?:(?:")
            in_group = True
        elif c == "}":
            if in_group:
                regex.append("))")
                in_group = False
            else:
                regex.append("\\}")
        elif c == ",":
            regex.append(")|(?:" if in_group else ",")
        elif c == "*":
            if _next(glob, i) == "*":
                # Crosses directory boundaries
                regex.append(".*")
                i += 1
            else:
                regex.append("[^/]*")
        elif c == "?":
            regex.append("[^/]")
        else:
            if c in _REGEX_META_CHARS:
                regex.append("\\")
            regex.append(c)

    if in_group:
        raise GlobSyntaxError("Missing '}'", glob, i - 1)
    regex.append("$")
    return "".join(regex)


def _translate_class(glob: str, i: int, regex: list[str]) -> int:
    """Translate a ``[...]`` class starting just after its ``[``.

    Appends the regex for the class to ``regex`` and returns the index just
    past the closing ``]``.
    """
    # A class never matches the name separator
    regex.append("(?!/)[")
    if _next(glob, i) in ("!", "^"):
        regex.append("^")
        i += 1
    # Hyphen is literal at the start of a class
    body_length = 0
    if _next(glob, i) == "-":
        regex.append("\\-")
        body_length += 1
        i += 1

    has_range_start = False
    last = _EOL
    c = _EOL
    while i < len(glob):
        c = glob[i]
        i += 1
        if c == "]":
            break
        if c == "/":
            raise GlobSyntaxError("Explicit 'name separator' in class", glob, i - 1)
        body_length += 1
        if c == "-":
            if not has_range_start:
                raise GlobSyntaxError("Invalid range", glob, i - 1)
            c = _next(glob, i)
            i += 1
            if c == _EOL or c == "]":
                # Trailing hyphen is literal
                regex.append("\\-")
                break
            if c < last:
                raise GlobSyntaxError("Invalid range", glob, i - 3)
            regex.append("-")
            regex.append("\\" + c if c in _CLASS_ESCAPES else c)
            has_range_start = False
        else:
            regex.append("\\" + c if c in _CLASS_ESCAPES else c)
            has_range_start = True
            last = c

    if c != "]":
        raise GlobSyntaxError("Missing ']'", glob, i - 1)
    if body_length == 0:
        raise GlobSyntaxError("Empty character class", glob, i - 1)
    regex.append("]")
    return i


class PathMatcher:
    """A compiled glob that tests repository-relative paths."""

    __slots__ = ("pattern", "regex")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.regex = re.compile(to_regex_pattern(pattern))

    def matches(self, path: str | os.PathLike[str]) -> bool:
        """Return True if the whole of ``path`` matches this glob."""
        if not isinstance(path, str):
            path = os.fspath(path).replace(os.sep, "/")
        return self.regex.fullmatch(path) is not None

    def __repr__(self) -> str:
        return f"PathMatcher({self.pattern!r})"


@functools.lru_cache(maxsize=None)
def compile_glob(pattern: str) -> PathMatcher:
    """Compile ``pattern`` into a cached PathMatcher.

    Raises:
        GlobSyntaxError: If the glob is malformed.
    """
    return PathMatcher(pattern)
