import time
import logging
import threading
from pathlib import Path

from qtm.common.config import APPLICATION_NAME, HASH_WORKERS, TEXT_ENCODING
from qtm.common.config import default_comment, default_output_path
from qtm.common.errors import CancelledError
from qtm.torrent.encoder import encode_metafile
from qtm.torrent.hasher import PieceHasher, ProgressCallback
from qtm.torrent.metadata import InfoDictionary, Metafile, TorrentSummary, announce_from_urls
from qtm.torrent.planner import plan_pieces
from qtm.torrent.walker import walk
from qtm.torrent.writer import write_metafile

logger = logging.getLogger(__name__)


def create_torrent(
    content_path: Path | str,
    output_path: Path | str | None,
    announce: str | list[str],
    *,
    private: bool = False,
    piece_length: int | None = None,
    comment: str | None = None,
    created_by: str = APPLICATION_NAME,
    creation_date: int | None = None,
    exclude=(),
    workers: int = HASH_WORKERS,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> TorrentSummary:
    """
    Build a .torrent for `content_path` and write it to `output_path`.

    Args:
        content_path: File or directory to describe
        output_path: Where to write the metafile; defaults to data/torrents/qtm2-<date>.torrent
        announce: Tracker URL, or a list of tracker URLs in priority order
        private: Set the private flag in the info dictionary
        piece_length: Force a piece length instead of the size-class heuristic
        comment: Free text comment; defaults to a "created by" line
        creation_date: Unix timestamp; defaults to now
        exclude: Glob patterns of files to leave out
        workers: Hashing threads
        progress: Called with (pieces_done, pieces_total, bytes_done, bytes_total)
        cancel: Set from any thread to abort; nothing is written

    Raises IoError, EmptyInputError, InvalidSizeError, EncodingError or CancelledError.
    """
    if creation_date is None:
        creation_date = int(time.time())
    if output_path is None:
        output_path = default_output_path(creation_date)
    if comment is None:
        comment = default_comment(created_by)
    announce = announce_from_urls(announce)

    name, files, single_file = walk(content_path, exclude)
    layout = plan_pieces(sum(f.length for f in files), piece_length)
    pieces = PieceHasher(files, layout, workers, progress, cancel).run()

    info = InfoDictionary(
        name=name,
        piece_length=layout.piece_length,
        pieces=pieces,
        files=tuple(files),
        single_file=single_file,
        private=private,
    )
    metafile = Metafile(
        announce=announce,
        creation_date=creation_date,
        created_by=created_by,
        info=info,
        comment=comment,
        encoding=TEXT_ENCODING,
    )
    encoded = encode_metafile(metafile)

    if cancel is not None and cancel.is_set():
        raise CancelledError()

    summary = write_metafile(encoded, output_path, info, announce.urls)
    logger.info(f"Created torrent {summary.name} with info hash {summary.info_hash_hex}")
    return summary
