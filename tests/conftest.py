import hashlib
import random
import threading
from pathlib import Path

import pytest

KiB = 1024
MiB = 1024 * KiB


def random_bytes(size: int, seed: int = 0) -> bytes:
    return random.Random(seed).randbytes(size)


def reference_digests(data: bytes, piece_length: int) -> list[bytes]:
    """Single-stream hashing of already concatenated content."""
    return [
        hashlib.sha1(data[i : i + piece_length]).digest()
        for i in range(0, len(data), piece_length)
    ]


def split_digests(pieces: bytes) -> list[bytes]:
    return [pieces[i : i + 20] for i in range(0, len(pieces), 20)]


def hasher_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name.startswith("qtm-hasher")]


@pytest.fixture
def make_tree(tmp_path):
    """Write {relative path: bytes} under tmp_path/content and return the root."""

    def _make(files: dict[str, bytes], root_name: str = "content") -> Path:
        root = tmp_path / root_name
        root.mkdir(parents=True, exist_ok=True)
        for rel, data in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return root

    return _make
