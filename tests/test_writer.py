import base64
from pathlib import Path

import pytest

from qtm.common.errors import IoError
from qtm.torrent.metadata import EncodedMetafile, FileEntry, InfoDictionary
from qtm.torrent.writer import write_metafile

INFO_HASH = bytes(range(20))


def make_info():
    return InfoDictionary(
        name="album",
        piece_length=16 * 1024,
        pieces=b"\x02" * 40,
        files=(
            FileEntry(("a.flac",), 20000, Path("a"), 0),
            FileEntry(("b.flac",), 100, Path("b"), 20000),
        ),
        single_file=False,
    )


def encoded(data=b"d4:infode"):
    return EncodedMetafile(data, b"de", INFO_HASH)


def leftovers(directory: Path):
    return [p.name for p in directory.iterdir() if p.name.endswith(".tmp")]


def test_writes_file_and_returns_summary(tmp_path):
    target = tmp_path / "album.torrent"

    summary = write_metafile(encoded(), target, make_info(), ("http://t.example/announce",))

    assert target.read_bytes() == b"d4:infode"
    assert summary.path == target
    assert summary.info_hash == INFO_HASH
    assert summary.name == "album"
    assert summary.total_length == 20100
    assert summary.piece_count == 2
    assert summary.file_count == 2
    assert leftovers(tmp_path) == []


def test_creates_parent_directories(tmp_path):
    target = tmp_path / "data" / "torrents" / "x.torrent"
    write_metafile(encoded(), target, make_info())
    assert target.exists()


def test_overwrites_existing_target(tmp_path):
    target = tmp_path / "album.torrent"
    target.write_bytes(b"old")
    write_metafile(encoded(b"new"), target, make_info())
    assert target.read_bytes() == b"new"


def test_failed_rename_leaves_nothing(tmp_path):
    target = tmp_path / "album.torrent"
    target.mkdir()
    (target / "keep").write_bytes(b"")

    with pytest.raises(IoError) as excinfo:
        write_metafile(encoded(), target, make_info())

    assert excinfo.value.path == target
    assert target.is_dir()
    assert leftovers(tmp_path) == []


def test_unwritable_parent(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")
    with pytest.raises(IoError):
        write_metafile(encoded(), blocker / "x.torrent", make_info())


def test_summary_display_forms(tmp_path):
    summary = write_metafile(
        encoded(), tmp_path / "a.torrent", make_info(), ("http://t.example/announce",)
    )
    assert summary.info_hash_hex == INFO_HASH.hex()
    assert summary.info_hash_base32 == base64.b32encode(INFO_HASH).decode()
    assert len(summary.info_hash_base32) == 32
    assert summary.magnet_uri == (
        f"magnet:?xt=urn:btih:{INFO_HASH.hex()}&dn=album"
        "&tr=http%3A%2F%2Ft.example%2Fannounce"
    )
    text = summary.describe()
    assert "Torrent: album" in text
    assert "Pieces: 2 x 16.00 KiB" in text
    assert INFO_HASH.hex() in text
