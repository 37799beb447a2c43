"""
Filesystem search for build outputs.
"""
import fnmatch
import os
import stat
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

from .context import Console
from .errors import DiscoveryError


def _walk(root: str) -> Iterator[Tuple[str, bool]]:
    """Yield ``(path, is_dir)`` for ``root`` and everything below it.

    Entries are visited depth first in lexical order. Symlinks are reported
    with their own type and never followed.
    """
    try:
        root_is_dir = stat.S_ISDIR(os.lstat(root).st_mode)
    except OSError as exc:
        raise DiscoveryError(root, exc) from exc

    yield root, root_is_dir
    if root_is_dir:
        yield from _walk_directory(root)


def _walk_directory(directory: str) -> Iterator[Tuple[str, bool]]:
    try:
        with os.scandir(directory) as entries:
            children = sorted(entries, key=lambda entry: entry.name)
    except OSError as exc:
        raise DiscoveryError(directory, exc) from exc

    for entry in children:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            raise DiscoveryError(entry.path, exc) from exc
        yield entry.path, is_dir
        if is_dir:
            yield from _walk_directory(entry.path)


def find_paths(
    root: str | Path,
    pattern: str,
    want_dir: bool,
    console: Console | None = None,
) -> List[str]:
    """Return entries below ``root`` whose path matches the glob ``pattern``.

    Only directories are returned when ``want_dir`` is set, only
    non-directories otherwise. ``*`` also matches path separators, so a
    pattern like ``*build/app/outputs/apk/*.apk`` matches at any depth.
    """
    location = str(root)
    matches = [
        path
        for path, is_dir in _walk(location)
        if is_dir == want_dir and fnmatch.fnmatchcase(path, pattern)
    ]
    if not matches and console:
        console.debug(
            f"couldn't find output artifact on path: {os.path.join(location, pattern)}")
    return matches


def find_artifacts(
    root: str | Path,
    patterns: Sequence[str],
    want_dir: bool,
    console: Console | None = None,
) -> List[str]:
    """Concatenate :func:`find_paths` results for every pattern, in order."""
    paths: List[str] = []
    for pattern in patterns:
        paths.extend(find_paths(root, pattern, want_dir, console))
    return paths
