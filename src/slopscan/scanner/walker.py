"""File walker — enumerates scannable text files under a root."""

from __future__ import annotations

import codecs
import fnmatch
import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

from slopscan.errors import WalkError

logger = logging.getLogger(__name__)

# Directories to always skip
SKIP_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "__pycache__",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        ".venv",
        "venv",
        ".tox",
        ".eggs",
        ".next",
        "dist",
        "build",
        "coverage",
    }
)

_SNIFF_BYTES = 8192
DEFAULT_MAX_FILE_SIZE = 1_048_576


class IgnoreMatcher:
    """Gitignore-flavoured glob matching against root-relative paths.

    - ``name/`` ignores a directory of that name anywhere, and its contents
    - patterns containing ``/`` match the whole relative path
    - other patterns match any single path component (``*.min.js``, ``tmp``)
    """

    def __init__(self, patterns: list[str] | tuple[str, ...] = ()) -> None:
        self._component: list[str] = []
        self._path: list[str] = []
        self._dirs: list[str] = []
        for raw in patterns:
            pattern = raw.strip().replace("\\", "/")
            if not pattern or pattern.startswith("#"):
                continue
            if pattern.startswith("./"):
                pattern = pattern[2:]
            pattern = pattern.lstrip("/")
            if not pattern:
                continue
            if pattern.endswith("/"):
                self._dirs.append(pattern.rstrip("/"))
            elif "/" in pattern:
                self._path.append(pattern)
            else:
                self._component.append(pattern)

    def __bool__(self) -> bool:
        return bool(self._component or self._path or self._dirs)

    def matches(self, rel_path: str, is_dir: bool = False) -> bool:
        """True if ``rel_path`` (POSIX, relative to the scan root) is ignored."""
        rel_path = rel_path.strip("/")
        if not rel_path:
            return False
        parts = rel_path.split("/")

        for pattern in self._component:
            if any(fnmatch.fnmatchcase(part, pattern) for part in parts):
                return True

        for pattern in self._dirs:
            if "/" in pattern:
                if _path_match(rel_path, pattern) or _path_match(
                    rel_path, pattern + "/**"
                ):
                    return True
                continue
            # Only directory components count: the last part of a file path is a file
            dir_parts = parts if is_dir else parts[:-1]
            if any(fnmatch.fnmatchcase(part, pattern) for part in dir_parts):
                return True

        for pattern in self._path:
            if _path_match(rel_path, pattern):
                return True
            if pattern.endswith("/**") and _path_match(rel_path, pattern[:-3]):
                return True
        return False


def _path_match(rel_path: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    # "**/" may also match zero directories
    if pattern.startswith("**/"):
        return fnmatch.fnmatchcase(rel_path, pattern[3:])
    if "/**/" in pattern:
        return fnmatch.fnmatchcase(rel_path, pattern.replace("/**/", "/"))
    return False


def is_binary(path: Path) -> bool:
    """Content sniffing: a NUL byte or invalid UTF-8 in the head means binary."""
    try:
        with path.open("rb") as fh:
            head = fh.read(_SNIFF_BYTES)
    except OSError:
        return True
    if b"\x00" in head:
        return True
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        # final=False tolerates a multibyte sequence cut at the sniff boundary
        decoder.decode(head, final=False)
    except UnicodeDecodeError:
        return True
    return False


class FileWalker:
    """Lazily yields text files under a root, honoring ignore globs.

    Each call to ``walk`` starts a fresh traversal. Symlinked directories
    are followed, but a directory whose real path was already visited is
    skipped, so link cycles terminate. A file reachable through several
    paths (e.g. a symlink and its target) is yielded once.
    """

    def __init__(
        self,
        ignore_globs: list[str] | tuple[str, ...] = (),
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        skip_dirs: frozenset[str] = SKIP_DIRS,
    ) -> None:
        self._ignore = IgnoreMatcher(list(ignore_globs))
        self._max_file_size = max_file_size
        self._skip_dirs = skip_dirs

    def walk(
        self,
        root: str | Path,
        on_error: Callable[[WalkError], None] | None = None,
        on_skip: Callable[[Path], None] | None = None,
    ) -> Iterator[Path]:
        """Yield scannable files in deterministic (sorted) order."""
        root = Path(root)
        if root.is_file():
            if self._accept_file(root, root.name, on_skip):
                yield root
            return

        visited: set[str] = {os.path.realpath(root)}
        seen_files: set[str] = set()

        def _onerror(err: OSError) -> None:
            error = WalkError(
                f"Cannot read directory {err.filename}: {err.strerror}",
                context={"path": str(err.filename)},
            )
            logger.warning("%s", error)
            if on_error:
                on_error(error)

        for dirpath, dirs, files in os.walk(root, onerror=_onerror, followlinks=True):
            current = Path(dirpath)
            rel_dir = _relative(current, root)

            kept = []
            for d in sorted(dirs):
                if d in self._skip_dirs or d.endswith(".egg-info"):
                    continue
                rel = f"{rel_dir}/{d}" if rel_dir else d
                if self._ignore.matches(rel, is_dir=True):
                    logger.debug("Ignoring directory %s", rel)
                    continue
                real = os.path.realpath(current / d)
                if real in visited:
                    logger.debug("Skipping already-visited directory %s", rel)
                    continue
                visited.add(real)
                kept.append(d)
            # Prune in place so os.walk does not descend
            dirs[:] = kept

            for name in sorted(files):
                rel = f"{rel_dir}/{name}" if rel_dir else name
                path = current / name
                if not self._accept_file(path, rel, on_skip):
                    continue
                real = os.path.realpath(path)
                if real in seen_files:
                    logger.debug("Skipping %s, same file as an earlier path", rel)
                    continue
                seen_files.add(real)
                yield path

    def _accept_file(
        self,
        path: Path,
        rel: str,
        on_skip: Callable[[Path], None] | None,
    ) -> bool:
        if self._ignore.matches(rel):
            return False
        try:
            if not path.is_file() or path.stat().st_size > self._max_file_size:
                if on_skip:
                    on_skip(path)
                return False
        except OSError:
            if on_skip:
                on_skip(path)
            return False
        if is_binary(path):
            logger.debug("Skipping binary file %s", rel)
            if on_skip:
                on_skip(path)
            return False
        return True


def _relative(path: Path, root: Path) -> str:
    try:
        rel = path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
    return "" if rel == "." else rel


def walk(root: str | Path, ignore_globs: list[str] | tuple[str, ...] = ()) -> Iterator[Path]:
    """Convenience wrapper: ``FileWalker(ignore_globs).walk(root)``."""
    return FileWalker(ignore_globs).walk(root)
