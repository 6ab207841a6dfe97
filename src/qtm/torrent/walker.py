import os
import fnmatch
import logging
from pathlib import Path

from qtm.common.errors import IoError, EmptyInputError
from qtm.torrent.metadata import FileEntry

logger = logging.getLogger(__name__)


def _is_excluded(segments: tuple[str, ...], exclude: tuple[str, ...]) -> bool:
    joined = "/".join(segments)
    for pattern in exclude:
        if fnmatch.fnmatchcase(joined, pattern):
            return True
        if any(fnmatch.fnmatchcase(seg, pattern) for seg in segments):
            return True
    return False


def _scan(directory: Path, prefix: tuple[str, ...], exclude: tuple[str, ...], found: list):
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        raise IoError(f"Cannot list directory ({e.strerror})", directory) from e

    for entry in entries:
        segments = prefix + (entry.name,)
        if _is_excluded(segments, exclude):
            logger.debug(f"Excluded {'/'.join(segments)}")
            continue
        try:
            # symlinks are never followed, neither to files nor to directories
            if entry.is_symlink():
                logger.debug(f"Skipping symbolic link {entry.path}")
                continue
            if entry.is_dir(follow_symlinks=False):
                _scan(Path(entry.path), segments, exclude, found)
            elif entry.is_file(follow_symlinks=False):
                found.append((segments, Path(entry.path), entry.stat(follow_symlinks=False).st_size))
            else:
                logger.debug(f"Skipping special file {entry.path}")
        except OSError as e:
            raise IoError(f"Cannot stat ({e.strerror})", entry.path) from e


def walk(root: Path | str, exclude=()) -> tuple[str, list[FileEntry], bool]:
    """
    Enumerate the content under `root`.

    Returns the torrent name, the files in virtual-stream order (sorted by
    path segments, case-sensitive) with their offsets filled in, and whether
    the root is a single file.
    """
    exclude = tuple(exclude)
    root = Path(root)
    if not os.path.lexists(root):
        raise IoError("Content path does not exist", root)
    # named after the path as given, not a symlink target
    name = Path(os.path.normpath(os.path.abspath(root))).name
    try:
        root = root.resolve(strict=True)
    except OSError as e:
        raise IoError(f"Cannot resolve content path ({e})", root) from e

    if root.is_file():
        if _is_excluded((name,), exclude):
            raise EmptyInputError(f"{name} is excluded")
        try:
            size = root.stat().st_size
        except OSError as e:
            raise IoError(f"Cannot stat ({e.strerror})", root) from e
        if size == 0:
            raise EmptyInputError(f"{root} is empty")
        logger.info(f"Walked single file {name} ({size} bytes)")
        return name, [FileEntry((name,), size, root, 0)], True

    if not root.is_dir():
        raise IoError("Content path is neither a file nor a directory", root)

    found: list[tuple[tuple[str, ...], Path, int]] = []
    _scan(root, (), exclude, found)
    if not found:
        raise EmptyInputError(f"No files found under {root}")

    found.sort(key=lambda item: item[0])
    files = []
    offset = 0
    for segments, source, size in found:
        files.append(FileEntry(segments, size, source, offset))
        offset += size

    if offset == 0:
        raise EmptyInputError(f"All {len(files)} file(s) under {root} are empty")

    logger.info(f"Walked {name}: {len(files)} files, {offset} bytes")
    return name, files, False
