import os
import logging
import tempfile
from pathlib import Path

from qtm.common.errors import IoError
from qtm.torrent.metadata import EncodedMetafile, InfoDictionary, TorrentSummary

logger = logging.getLogger(__name__)


def _atomic_write(data: bytes, target: Path):
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
    except OSError as e:
        raise IoError(f"Cannot create output file ({e.strerror})", target) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise IoError(f"Failed to write torrent to disk ({e.strerror})", target) from e
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_metafile(
    encoded: EncodedMetafile,
    target: Path | str,
    info: InfoDictionary,
    trackers: tuple[str, ...] = (),
) -> TorrentSummary:
    target = Path(target)
    _atomic_write(encoded.data, target)
    logger.info(f"{target.name} has been written to disk successfully ({len(encoded.data)} bytes)")

    return TorrentSummary(
        info_hash=encoded.info_hash,
        name=info.name,
        total_length=info.total_length,
        piece_length=info.piece_length,
        piece_count=info.piece_count,
        file_count=len(info.files),
        path=target,
        trackers=trackers,
    )
