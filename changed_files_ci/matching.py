from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable

from changed_files_ci.models import ROOT_DIRECTORY, DirectoryRecord


def parse_patterns(raw: str | Iterable[str]) -> list[str]:
    """Turn newline-separated input (or a list of lines) into trimmed glob patterns.

    Blank lines and ``#`` comments are dropped.
    """
    lines = raw.splitlines() if isinstance(raw, str) else list(raw)
    out: list[str] = []
    for line in lines:
        p = str(line).strip()
        if not p or p.startswith("#"):
            continue
        out.append(p)
    return out


def is_directory_pattern(pattern: str) -> bool:
    return pattern.endswith("/")


def split_patterns(patterns: Iterable[str]) -> tuple[list[str], list[str]]:
    file_patterns: list[str] = []
    directory_patterns: list[str] = []
    for pattern in patterns:
        if is_directory_pattern(pattern):
            directory_patterns.append(pattern)
        else:
            file_patterns.append(pattern)
    return file_patterns, directory_patterns


def _split_alternatives(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(body):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return parts


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives: ``src/*.{ts,js}`` gives ``src/*.ts`` and ``src/*.js``.

    Braces without a comma, or left unclosed, are kept literally.
    """
    depth = 0
    start = -1
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth:
                continue
            options = _split_alternatives(pattern[start + 1:i])
            if len(options) < 2:
                head = pattern[: i + 1]
                return [head + rest for rest in expand_braces(pattern[i + 1:])]
            prefix, suffix = pattern[:start], pattern[i + 1:]
            out: list[str] = []
            for option in options:
                for expanded in expand_braces(prefix + option + suffix):
                    if expanded not in out:
                        out.append(expanded)
            return out
    return [pattern]


def _segment_match(pattern: str, name: str) -> bool:
    # wildcards never match a leading "." unless the pattern spells it out
    if name.startswith(".") and not pattern.startswith("."):
        return False
    return fnmatchcase(name, pattern)


def _match_segments(patterns: list[str], names: list[str]) -> bool:
    if not patterns:
        return not names
    seg = patterns[0]
    if seg == "**":
        if _match_segments(patterns[1:], names):
            return True
        # one more directory, never a dot directory
        if names and not names[0].startswith("."):
            return _match_segments(patterns, names[1:])
        return False
    if not names:
        return False
    return _segment_match(seg, names[0]) and _match_segments(patterns[1:], names[1:])


def glob_match(path: str, pattern: str) -> bool:
    """Shell-style whole-path match.

    ``*`` and ``?`` stay inside one segment, ``**`` spans any number of
    segments, ``[...]`` and ``{a,b}`` work as in a shell. Names starting with
    ``.`` only match pattern segments that start with ``.`` too.
    """
    names = path.split("/")
    return any(_match_segments(p.split("/"), names) for p in expand_braces(pattern))


def _directory_match(path: str, pattern: str) -> bool:
    if path == ROOT_DIRECTORY:
        return any(p.rstrip("/") == ROOT_DIRECTORY for p in expand_braces(pattern))
    return glob_match(path.rstrip("/"), pattern.rstrip("/"))


def match_files(paths: Iterable[str], file_patterns: list[str]) -> list[str]:
    if not file_patterns:
        return []
    return [p for p in paths if any(glob_match(p, pattern) for pattern in file_patterns)]


def match_directories(
    directories: Iterable[DirectoryRecord],
    directory_patterns: list[str],
) -> list[DirectoryRecord]:
    if not directory_patterns:
        return []
    return [
        d
        for d in directories
        if any(_directory_match(d.path, pattern) for pattern in directory_patterns)
    ]
