import hashlib
import logging

import bencodepy

from qtm.common.errors import EncodingError
from qtm.torrent.metadata import (
    PIECE_DIGEST_LENGTH,
    AnnounceList,
    EncodedMetafile,
    InfoDictionary,
    Metafile,
    SingleAnnounce,
)
from qtm.torrent.planner import is_valid_piece_length, piece_count_for

logger = logging.getLogger(__name__)


def _canonical(value):
    """Reduce `value` to ints, bytes, lists and bytes-keyed dicts for bencodepy.

    Keys are normalised to UTF-8 bytes first so the library's key sort is
    byte-wise no matter how the dict was built or in which order.
    """
    # bool is an int subclass but has no bencode form
    if isinstance(value, bool):
        raise EncodingError("Booleans have no bencode representation; use 0 or 1")
    if isinstance(value, int):
        if value < 0:
            raise EncodingError(f"Negative integers are not valid in a metafile: {value}")
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, dict):
        canonical = {}
        for key, item in value.items():
            if isinstance(key, str):
                raw = key.encode("utf-8")
            elif isinstance(key, (bytes, bytearray)):
                raw = bytes(key)
            else:
                raise EncodingError(f"Dictionary keys must be strings, got {type(key).__name__}")
            if raw in canonical:
                raise EncodingError(f"Duplicate dictionary key {raw!r}")
            canonical[raw] = _canonical(item)
        return {raw: canonical[raw] for raw in sorted(canonical)}
    raise EncodingError(f"Cannot bencode value of type {type(value).__name__}")


def encode(value) -> bytes:
    canonical = _canonical(value)
    try:
        return bencodepy.encode(canonical)
    except Exception as e:
        raise EncodingError(f"bencode failed: {e}") from e


def _validate_info(info: InfoDictionary):
    if not info.name:
        raise EncodingError("Torrent name must not be empty")
    if not info.files:
        raise EncodingError("Torrent must contain at least one file")
    if info.single_file and len(info.files) != 1:
        raise EncodingError(f"Single-file torrent has {len(info.files)} files")
    for entry in info.files:
        if not entry.path or any(not seg or seg in (".", "..") for seg in entry.path):
            raise EncodingError(f"Invalid file path {entry.path!r}")
        if entry.length < 0:
            raise EncodingError(f"Negative file length for {'/'.join(entry.path)}")
    if not is_valid_piece_length(info.piece_length):
        raise EncodingError(f"Invalid piece length {info.piece_length}")

    total_length = info.total_length
    if total_length <= 0:
        raise EncodingError("Torrent content is empty")
    if len(info.pieces) % PIECE_DIGEST_LENGTH != 0:
        raise EncodingError(
            f"Piece hashes are {len(info.pieces)} bytes, not a multiple of {PIECE_DIGEST_LENGTH}"
        )
    expected = piece_count_for(total_length, info.piece_length)
    if info.piece_count != expected:
        raise EncodingError(f"Expected {expected} piece hashes, got {info.piece_count}")


def info_to_dict(info: InfoDictionary) -> dict:
    _validate_info(info)
    d = {
        "name": info.name,
        "piece length": info.piece_length,
        "pieces": info.pieces,
    }
    if info.single_file:
        d["length"] = info.files[0].length
    else:
        d["files"] = [{"length": f.length, "path": list(f.path)} for f in info.files]
    if info.private:
        d["private"] = 1
    return d


def _announce_fields(announce) -> dict:
    match announce:
        case SingleAnnounce(url=url):
            if not url:
                raise EncodingError("Announce URL must not be empty")
            return {"announce": url}
        case AnnounceList(urls=urls):
            if not urls or any(not url for url in urls):
                raise EncodingError("Announce list must contain non-empty URLs")
            # one tier per tracker, tried in order
            return {"announce": urls[0], "announce-list": [[url] for url in urls]}
        case _:
            raise EncodingError(f"Unsupported announce value {announce!r}")


def metafile_to_dict(metafile: Metafile) -> dict:
    d = _announce_fields(metafile.announce)
    d["creation date"] = metafile.creation_date
    d["created by"] = metafile.created_by
    if metafile.comment:
        d["comment"] = metafile.comment
    if metafile.encoding:
        d["encoding"] = metafile.encoding
    d["info"] = info_to_dict(metafile.info)
    return d


def compute_info_hash(info: InfoDictionary) -> bytes:
    return hashlib.sha1(encode(info_to_dict(info))).digest()


def encode_metafile(metafile: Metafile) -> EncodedMetafile:
    d = metafile_to_dict(metafile)
    info_bytes = encode(d["info"])
    data = encode(d)
    info_hash = hashlib.sha1(info_bytes).digest()
    logger.info(
        f"Encoded metafile for {metafile.info.name}: {len(data)} bytes, info hash {info_hash.hex()}"
    )
    return EncodedMetafile(data, info_bytes, info_hash)
