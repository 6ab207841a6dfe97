import base64
from pathlib import Path
from urllib.parse import quote

PIECE_DIGEST_LENGTH = 20


class FileEntry:
    __slots__ = ("path", "length", "source", "offset")

    def __init__(self, path: tuple[str, ...], length: int, source: Path, offset: int = 0):
        self.path = tuple(path)
        self.length = length
        self.source = source
        self.offset = offset  # start of this file in the virtual stream

    @property
    def end(self) -> int:
        return self.offset + self.length

    def __repr__(self):
        return f"FileEntry(path={'/'.join(self.path)!r}, length={self.length}, offset={self.offset})"


class PieceLayout:
    __slots__ = ("piece_length", "piece_count", "total_length")

    def __init__(self, piece_length: int, piece_count: int, total_length: int):
        self.piece_length = piece_length
        self.piece_count = piece_count
        self.total_length = total_length

    def piece_span(self, index: int) -> tuple[int, int]:
        if not 0 <= index < self.piece_count:
            raise IndexError(f"piece index {index} out of range 0..{self.piece_count - 1}")
        start = index * self.piece_length
        return start, min(start + self.piece_length, self.total_length)

    def piece_size(self, index: int) -> int:
        start, end = self.piece_span(index)
        return end - start

    def __repr__(self):
        return (
            f"PieceLayout(piece_length={self.piece_length}, "
            f"piece_count={self.piece_count}, total_length={self.total_length})"
        )


class InfoDictionary:
    __slots__ = ("name", "piece_length", "pieces", "files", "single_file", "private")

    def __init__(
        self,
        name: str,
        piece_length: int,
        pieces: bytes,
        files: tuple[FileEntry, ...],
        single_file: bool,
        private: bool = False,
    ):
        self.name = name
        self.piece_length = piece_length
        self.pieces = pieces
        self.files = tuple(files)
        self.single_file = single_file
        self.private = private

    @property
    def total_length(self) -> int:
        return sum(f.length for f in self.files)

    @property
    def piece_count(self) -> int:
        return len(self.pieces) // PIECE_DIGEST_LENGTH


class SingleAnnounce:
    __slots__ = ("url",)

    def __init__(self, url: str):
        self.url = url

    @property
    def urls(self) -> tuple[str, ...]:
        return (self.url,)


class AnnounceList:
    __slots__ = ("urls",)

    def __init__(self, urls: list[str] | tuple[str, ...]):
        self.urls = tuple(urls)


Announce = SingleAnnounce | AnnounceList


def announce_from_urls(urls: str | list[str] | tuple[str, ...]) -> Announce:
    if isinstance(urls, str):
        return SingleAnnounce(urls)
    if len(urls) == 1:
        return SingleAnnounce(urls[0])
    return AnnounceList(urls)


class Metafile:
    __slots__ = ("announce", "creation_date", "created_by", "info", "comment", "encoding")

    def __init__(
        self,
        announce: Announce,
        creation_date: int,
        created_by: str,
        info: InfoDictionary,
        comment: str | None = None,
        encoding: str | None = None,
    ):
        self.announce = announce
        self.creation_date = creation_date
        self.created_by = created_by
        self.info = info
        self.comment = comment
        self.encoding = encoding


class EncodedMetafile:
    __slots__ = ("data", "info_bytes", "info_hash")

    def __init__(self, data: bytes, info_bytes: bytes, info_hash: bytes):
        self.data = data
        self.info_bytes = info_bytes
        self.info_hash = info_hash


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024


class TorrentSummary:
    __slots__ = (
        "info_hash",
        "name",
        "total_length",
        "piece_length",
        "piece_count",
        "file_count",
        "path",
        "trackers",
    )

    def __init__(
        self,
        info_hash: bytes,
        name: str,
        total_length: int,
        piece_length: int,
        piece_count: int,
        file_count: int,
        path: Path,
        trackers: tuple[str, ...] = (),
    ):
        self.info_hash = info_hash
        self.name = name
        self.total_length = total_length
        self.piece_length = piece_length
        self.piece_count = piece_count
        self.file_count = file_count
        self.path = path
        self.trackers = tuple(trackers)

    @property
    def info_hash_hex(self) -> str:
        return self.info_hash.hex()

    @property
    def info_hash_base32(self) -> str:
        return base64.b32encode(self.info_hash).decode("ascii")

    @property
    def magnet_uri(self) -> str:
        parts = [f"magnet:?xt=urn:btih:{self.info_hash_hex}", f"dn={quote(self.name)}"]
        parts.extend(f"tr={quote(url, safe='')}" for url in self.trackers)
        return "&".join(parts)

    def describe(self) -> str:
        return "\n".join(
            [
                f"Torrent: {self.name}",
                f"Size: {format_size(self.total_length)} in {self.file_count} file(s)",
                f"Pieces: {self.piece_count} x {format_size(self.piece_length)}",
                f"Info hash: {self.info_hash_hex}",
                f"Written to: {self.path}",
            ]
        )
