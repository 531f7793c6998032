"""Find local rc files between a directory and the filesystem root.

The walk collects matches nearest-first, trims them to the configured
keep-count (the closest matches survive) and hands them back in execution
order: the root-most surviving file first, so nearer files run later and
can override what farther ones set.
"""

from __future__ import annotations

import os
import pathlib


def resolve_start_dir(file_path: str | os.PathLike[str] | None = None) -> pathlib.Path:
    """Return the directory a search should start from.

    That is the triggering file's directory, the path itself when it
    already names a directory, or the working directory without a file.
    """
    if not file_path:
        return pathlib.Path.cwd()
    path = pathlib.Path(file_path).expanduser().resolve()
    if path.is_dir():
        return path
    return path.parent


def check_filename(filename: str) -> None:
    """Raise ``ValueError`` unless *filename* is a bare file name."""
    if filename in ("", ".", "..") or pathlib.Path(filename).name != filename:
        raise ValueError(f"filename must be a bare file name, got {filename!r}")


def check_keep_count(keep_count: int) -> None:
    """Raise ``ValueError`` for keep-counts below ``-1``."""
    if keep_count < -1:
        raise ValueError(f"keep_count must be -1 or greater, got {keep_count}")


def _has_file(directory: pathlib.Path, filename: str) -> bool:
    try:
        return (directory / filename).is_file()
    except OSError:
        return False


def walk_up(start_dir: str | os.PathLike[str], filename: str) -> list[pathlib.Path]:
    """Return every ``<ancestor>/<filename>`` that exists, nearest first.

    The walk includes *start_dir* and the filesystem root. Directories
    that cannot be inspected contribute nothing.
    """
    check_filename(filename)
    # resolve() so ".." climbs to the real parent, not back down a sibling
    current = pathlib.Path(start_dir).resolve()
    matches: list[pathlib.Path] = []
    while True:
        if _has_file(current, filename):
            matches.append(current / filename)
        parent = current.parent
        if parent == current:
            return matches
        current = parent


def apply_keep_count(matches: list[pathlib.Path], keep_count: int) -> list[pathlib.Path]:
    """Keep the first *keep_count* matches, all of them for ``-1``."""
    check_keep_count(keep_count)
    if keep_count == -1:
        return list(matches)
    return matches[:keep_count]


def find_candidates(
    start_dir: str | os.PathLike[str],
    filename: str,
    keep_count: int = -1,
) -> list[pathlib.Path]:
    """Return the rc files to execute for *start_dir*, root-most first."""
    kept = apply_keep_count(walk_up(start_dir, filename), keep_count)
    kept.reverse()
    return kept
