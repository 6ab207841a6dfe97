import pytest

from conftest import KiB, MiB
from qtm.common.errors import InvalidSizeError
from qtm.torrent.planner import (
    MAX_PIECE_LENGTH,
    MAX_PIECES,
    MIN_PIECE_LENGTH,
    PIECE_LENGTH_CLASSES,
    piece_count_for,
    plan_pieces,
)

SIZES = [
    1,
    16 * KiB,
    16 * KiB + 1,
    MAX_PIECES * 16 * KiB,
    MAX_PIECES * 16 * KiB + 1,
    700 * MiB,
    10**9,
    3 * 2**30,
    20 * 2**30,
    32 * 2**30 + 5,
    100 * 2**40,
]


def test_size_class_table():
    assert PIECE_LENGTH_CLASSES[0] == 16 * KiB
    assert PIECE_LENGTH_CLASSES[-1] == 16 * MiB
    assert len(PIECE_LENGTH_CLASSES) == 11
    assert all(b == 2 * a for a, b in zip(PIECE_LENGTH_CLASSES, PIECE_LENGTH_CLASSES[1:]))


@pytest.mark.parametrize("total", SIZES)
def test_layout_covers_content(total):
    layout = plan_pieces(total)
    assert layout.piece_length in PIECE_LENGTH_CLASSES
    assert layout.piece_count * layout.piece_length >= total
    assert (layout.piece_count - 1) * layout.piece_length < total


@pytest.mark.parametrize("total", SIZES)
def test_one_class_smaller_leaves_band(total):
    layout = plan_pieces(total)
    if layout.piece_length == MIN_PIECE_LENGTH:
        assert layout.piece_count <= MAX_PIECES
    else:
        assert piece_count_for(total, layout.piece_length // 2) > MAX_PIECES


@pytest.mark.parametrize("total", [700 * MiB, 10**9, 3 * 2**30, 20 * 2**30])
def test_piece_count_in_band(total):
    layout = plan_pieces(total)
    assert MAX_PIECES // 2 < layout.piece_count <= MAX_PIECES


def test_small_content_uses_smallest_class():
    layout = plan_pieces(1)
    assert layout.piece_length == MIN_PIECE_LENGTH
    assert layout.piece_count == 1


def test_huge_content_is_clamped():
    layout = plan_pieces(100 * 2**40)
    assert layout.piece_length == MAX_PIECE_LENGTH
    assert layout.piece_count > MAX_PIECES


def test_band_edge():
    assert plan_pieces(MAX_PIECES * 16 * KiB).piece_length == 16 * KiB
    assert plan_pieces(MAX_PIECES * 16 * KiB + 1).piece_length == 32 * KiB


def test_explicit_piece_length():
    layout = plan_pieces(32 * MiB, 1 * MiB)
    assert layout.piece_length == MiB
    assert layout.piece_count == 32
    assert layout.piece_span(31) == (31 * MiB, 32 * MiB)


def test_last_piece_is_short():
    layout = plan_pieces(10 * MiB + 3, MiB)
    assert layout.piece_count == 11
    assert layout.piece_size(10) == 3
    assert layout.piece_size(0) == MiB
    with pytest.raises(IndexError):
        layout.piece_span(11)


@pytest.mark.parametrize("total", [0, -1, -(2**40)])
def test_non_positive_total_rejected(total):
    with pytest.raises(InvalidSizeError):
        plan_pieces(total)


@pytest.mark.parametrize("piece_length", [8 * KiB, 1000, 3 * 16 * KiB, 0, -16 * KiB])
def test_invalid_explicit_piece_length(piece_length):
    with pytest.raises(InvalidSizeError):
        plan_pieces(MiB, piece_length)


def test_deterministic():
    assert [plan_pieces(s).piece_length for s in SIZES] == [plan_pieces(s).piece_length for s in SIZES]
