"""Pure path helpers shared by all drivers.

Nothing in here touches the filesystem. Paths use ``/`` internally
regardless of the host separator.
"""

from __future__ import annotations

import os


def scheme_prefix(scheme: str | None = None) -> str:
    """Return ``"<scheme>://"`` or an empty string for the local backend."""
    return f"{scheme}://" if scheme else ""


def fix_separator(path: str | None) -> str:
    """Normalize Windows separators to ``/``."""
    return (path or "").replace("\\", "/")


def parent_directory(path: str) -> str:
    """Return the parent directory of ``path``.

    Trailing separators are ignored, a bare name yields ``"."`` and the
    root is its own parent.

    Examples:
        >>> parent_directory("/a/b/")
        '/a'
        >>> parent_directory("file.txt")
        '.'
    """
    if not path:
        return ""
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    if "/" not in stripped:
        return "."
    head = stripped.rpartition("/")[0].rstrip("/")
    return head or "/"


def absolute_path(base_path: str, path: str, scheme: str | None = None) -> str:
    """Anchor ``path`` under ``base_path``, optionally behind a scheme.

    A leading ``/`` on ``path`` is stripped, so the result always lives
    under ``base_path``.

    Examples:
        >>> absolute_path("/base/", "x/y", "zip")
        'zip:///base/x/y'
    """
    return scheme_prefix(scheme) + base_path + fix_separator(path).lstrip("/")


def relative_path(base_path: str, path: str | None = None) -> str:
    """Strip ``base_path`` from the front of ``path`` when it is there.

    ``path`` equal to ``base_path`` minus its trailing slash yields ``""``.
    Paths outside ``base_path`` come back unchanged (separators fixed).
    """
    path = fix_separator(path)
    if path.startswith(base_path) or base_path == path + "/":
        return path[len(base_path):]
    return path


def real_path_safety(path: str) -> str:
    """Collapse ``.`` and ``..`` segments without consulting the disk.

    Each ``..`` removes the segment before it, so traversal payloads
    cannot climb above the start of the path. Paths without a
    ``/../`` segment are returned as-is.

    Examples:
        >>> real_path_safety("/a/b/../c")
        '/a/c'
    """
    sep = os.sep
    if f"{sep}..{sep}" not in path:
        return path
    resolved: list[str] = []
    for part in path.split(sep):
        if part == ".":
            continue
        if part == "..":
            if resolved:
                resolved.pop()
            continue
        resolved.append(part)
    return sep.join(resolved)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives the way a brace-aware glob does.

    Groups may nest. Alternatives are produced left to right. A ``{``
    without a matching ``}`` is kept literally.

    Examples:
        >>> expand_braces("*.{txt,csv}")
        ['*.txt', '*.csv']
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    commas: list[int] = []
    end = -1
    for i in range(start, len(pattern)):
        char = pattern[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
        elif char == "," and depth == 1:
            commas.append(i)

    if end == -1:
        head = pattern[: start + 1]
        return [head + rest for rest in expand_braces(pattern[start + 1 :])]

    bounds = [start, *commas, end]
    alternatives = [pattern[a + 1 : b] for a, b in zip(bounds, bounds[1:])]
    prefix, suffix = pattern[:start], pattern[end + 1 :]

    results: list[str] = []
    for alternative in alternatives:
        for expanded in expand_braces(alternative):
            results.extend(prefix + expanded + rest for rest in expand_braces(suffix))
    return results
