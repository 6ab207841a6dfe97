import bisect
import hashlib
import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_EXCEPTION
from typing import Callable, Iterator

from bitarray import bitarray

from qtm.common.config import HASH_WORKERS, READ_BLOCK_SIZE, PROGRESS_INTERVAL
from qtm.common.errors import IoError, CancelledError
from qtm.torrent.metadata import FileEntry, PieceLayout

logger = logging.getLogger(__name__)

# (pieces_done, pieces_total, bytes_done, bytes_total)
ProgressCallback = Callable[[int, int, int, int], None]

RANGES_PER_WORKER = 4


class StreamReader:
    """Sequential reader over the virtual concatenation of `files`.

    Opens at most one file at a time and moves on to the next file
    transparently when the current one is exhausted.
    """

    __slots__ = ("files", "position", "_index", "_handle")

    def __init__(self, files: list[FileEntry], position: int, ends: list[int] | None = None):
        self.files = files
        self.position = position
        if ends is None:
            ends = [f.end for f in files]
        # first file that still has bytes at `position`; skips empty files
        self._index = bisect.bisect_right(ends, position)
        self._handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _open(self, entry: FileEntry):
        try:
            handle = open(entry.source, "rb")
        except OSError as e:
            raise IoError(f"Cannot open file ({e.strerror})", entry.source) from e
        try:
            if os.fstat(handle.fileno()).st_size != entry.length:
                raise IoError("File changed size while hashing", entry.source)
            handle.seek(self.position - entry.offset)
        except OSError as e:
            handle.close()
            raise IoError(f"Cannot read file ({e.strerror})", entry.source) from e
        except IoError:
            handle.close()
            raise
        self._handle = handle

    def read(self, size: int) -> Iterator[bytes]:
        remaining = size
        while remaining > 0:
            if self._index >= len(self.files):
                raise IoError("Content ended early", self.files[-1].source)
            entry = self.files[self._index]
            if self.position >= entry.end:
                self.close()
                self._index += 1
                continue
            if self._handle is None:
                self._open(entry)

            want = min(remaining, entry.end - self.position, READ_BLOCK_SIZE)
            try:
                block = self._handle.read(want)
            except OSError as e:
                raise IoError(f"Cannot read file ({e.strerror})", entry.source) from e
            if len(block) != want:
                raise IoError("File changed size while hashing", entry.source)

            self.position += want
            remaining -= want
            yield block


class PieceHasher:
    __slots__ = (
        "files",
        "layout",
        "workers",
        "progress",
        "cancel",
        "digests",
        "completed",
        "pieces_done",
        "bytes_done",
        "_ends",
        "_stop",
        "_updates",
    )

    def __init__(
        self,
        files: list[FileEntry],
        layout: PieceLayout,
        workers: int = HASH_WORKERS,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.files = list(files)
        self.layout = layout
        self.workers = workers
        self.progress = progress
        self.cancel = cancel

        # one slot per piece, each written once by the worker owning its range
        self.digests: list[bytes | None] = [None] * layout.piece_count
        self.completed = bitarray(layout.piece_count)
        self.completed.setall(0)
        self.pieces_done = 0
        self.bytes_done = 0

        self._ends = [f.end for f in self.files]
        self._stop = threading.Event()
        self._updates = queue.SimpleQueue()

    def partition(self) -> list[tuple[int, int]]:
        count = self.layout.piece_count
        n_ranges = min(count, self.workers * RANGES_PER_WORKER)
        step = -(-count // n_ranges)
        return [(start, min(start + step, count)) for start in range(0, count, step)]

    def _should_stop(self) -> bool:
        return self._stop.is_set() or (self.cancel is not None and self.cancel.is_set())

    def _hash_range(self, first: int, last: int):
        start, _ = self.layout.piece_span(first)
        with StreamReader(self.files, start, self._ends) as reader:
            for index in range(first, last):
                if self._should_stop():
                    raise CancelledError()
                size = self.layout.piece_size(index)
                digest = hashlib.sha1()
                for block in reader.read(size):
                    digest.update(block)
                self.digests[index] = digest.digest()
                self._updates.put((index, size))
        logger.debug(f"Hashed pieces {first}..{last - 1}")

    def _report(self):
        changed = False
        while True:
            try:
                index, size = self._updates.get_nowait()
            except queue.Empty:
                break
            self.completed[index] = 1
            self.pieces_done += 1
            self.bytes_done += size
            changed = True

        if changed and self.progress is not None:
            self.progress(
                self.pieces_done,
                self.layout.piece_count,
                self.bytes_done,
                self.layout.total_length,
            )

    def _collect(self, futures):
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=PROGRESS_INTERVAL, return_when=FIRST_EXCEPTION)
            self._report()
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error
            if self.cancel is not None and self.cancel.is_set():
                raise CancelledError()
        self._report()
        if self.cancel is not None and self.cancel.is_set():
            raise CancelledError()

    def run(self) -> bytes:
        """Hash every piece and return the digests concatenated in index order."""
        ranges = self.partition()
        logger.info(
            f"Hashing {self.layout.piece_count} pieces across {len(self.files)} file(s) "
            f"with {min(self.workers, len(ranges))} worker(s)"
        )

        executor = ThreadPoolExecutor(
            max_workers=min(self.workers, len(ranges)), thread_name_prefix="qtm-hasher"
        )
        try:
            futures = [executor.submit(self._hash_range, first, last) for first, last in ranges]
            self._collect(futures)
        except BaseException:
            self._stop.set()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        if not self.completed.all():
            missing = self.completed.count(0)
            raise IoError(f"{missing} piece(s) were not hashed")

        logger.info(f"Hashed {self.pieces_done} pieces ({self.bytes_done} bytes)")
        return b"".join(self.digests)


def hash_pieces(
    files: list[FileEntry],
    layout: PieceLayout,
    workers: int = HASH_WORKERS,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> bytes:
    return PieceHasher(files, layout, workers, progress, cancel).run()
