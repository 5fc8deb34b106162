from __future__ import annotations

import os
import posixpath
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
from urllib.parse import quote_plus

from edgedeploy.errors import AssetDiscoveryError, AssetStatError


@dataclass(frozen=True)
class MatchedPath:
    path: Path
    is_symlink: bool


def encode_path(path: str) -> str:
    """Percent-encode each ``/``-separated segment, keeping the separators.

    Segments follow query-component escaping: unreserved characters stay as-is,
    spaces become ``+`` and everything else is ``%XX``. Not idempotent.
    """
    return "/".join(quote_plus(part, safe="") for part in path.split("/"))


def runtime_join(target: str, relpath: str) -> str:
    """Place a root-relative path under ``target`` in the runtime filesystem."""
    joined = posixpath.normpath(posixpath.join(target or ".", relpath.replace(os.sep, "/")))
    return "" if joined == "." else joined


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations (nesting allowed) into plain glob patterns."""
    start = _find_open_brace(pattern)
    if start < 0:
        if _find_unmatched_close(pattern) >= 0:
            raise AssetDiscoveryError(f"Invalid glob pattern {pattern!r}: unmatched '}}'")
        return [pattern]

    depth = 0
    end = -1
    splits: list[int] = []
    index = start
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index
                break
        elif char == "," and depth == 1:
            splits.append(index)
        index += 1
    if end < 0:
        raise AssetDiscoveryError(f"Invalid glob pattern {pattern!r}: unmatched '{{'")

    prefix = pattern[:start]
    suffix = pattern[end + 1 :]
    bounds = [start, *splits, end]
    alternatives = [pattern[bounds[i] + 1 : bounds[i + 1]] for i in range(len(bounds) - 1)]

    expanded: list[str] = []
    for alternative in alternatives:
        for candidate in expand_braces(prefix + alternative + suffix):
            if candidate not in expanded:
                expanded.append(candidate)
    return expanded


def _find_open_brace(pattern: str) -> int:
    index = 0
    while index < len(pattern):
        if pattern[index] == "\\":
            index += 2
            continue
        if pattern[index] == "{":
            return index
        index += 1
    return -1


def _find_unmatched_close(pattern: str) -> int:
    index = 0
    while index < len(pattern):
        if pattern[index] == "\\":
            index += 2
            continue
        if pattern[index] == "}":
            return index
        index += 1
    return -1


def iter_matches(root: str | os.PathLike[str], pattern: str) -> Iterator[MatchedPath]:
    """Lazily yield non-directory entries under ``root`` matching ``pattern``.

    Supports ``**``, ``{a,b}`` and single-segment wildcards. Entries are
    classified with ``lstat`` so symlinks are reported without being followed.
    """
    root_path = Path(root)
    patterns = [_normalize_globstar(expanded) for expanded in expand_braces(pattern)]
    for expanded in patterns:
        _check_brackets(pattern, expanded)
    _check_root(root_path)

    seen: set[Path] = set()
    for expanded in patterns:
        try:
            candidates = sorted(root_path.glob(expanded))
        except (ValueError, NotImplementedError) as exc:
            raise AssetDiscoveryError(f"Invalid glob pattern {pattern!r}: {exc}") from exc
        except OSError as exc:
            raise AssetDiscoveryError(f"Unable to read assets under {root_path}: {exc}") from exc

        for candidate in candidates:
            if candidate in seen:
                continue
            seen.add(candidate)
            try:
                info = os.lstat(candidate)
            except OSError as exc:
                raise AssetStatError(f"Failed to get the stat of file {candidate}: {exc}") from exc
            if stat.S_ISDIR(info.st_mode):
                continue
            yield MatchedPath(path=candidate, is_symlink=stat.S_ISLNK(info.st_mode))


def _normalize_globstar(pattern: str) -> str:
    # Path.glob treats a trailing ``**`` as directories only.
    if pattern == "**" or pattern.endswith("/**"):
        return pattern + "/*"
    return pattern


def _check_brackets(pattern: str, expanded: str) -> None:
    for segment in expanded.split("/"):
        index = 0
        while index < len(segment):
            char = segment[index]
            if char == "\\":
                index += 2
                continue
            if char == "[":
                close = index + 1
                if close < len(segment) and segment[close] in "!^":
                    close += 1
                if close < len(segment) and segment[close] == "]":
                    close += 1
                close = segment.find("]", close)
                if close < 0:
                    raise AssetDiscoveryError(f"Invalid glob pattern {pattern!r}: unmatched '['")
                index = close
            index += 1


def _check_root(root_path: Path) -> None:
    try:
        info = os.stat(root_path)
    except OSError as exc:
        raise AssetDiscoveryError(f"Unable to read assets under {root_path}: {exc}") from exc
    if not stat.S_ISDIR(info.st_mode):
        raise AssetDiscoveryError(f"Unable to read assets under {root_path}: not a directory")
    if not os.access(root_path, os.R_OK | os.X_OK):
        raise AssetDiscoveryError(f"Unable to read assets under {root_path}: permission denied")
