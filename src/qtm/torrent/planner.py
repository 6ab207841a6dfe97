import logging

from qtm.common.errors import InvalidSizeError
from qtm.torrent.metadata import PieceLayout

logger = logging.getLogger(__name__)

MIN_PIECE_LENGTH = 16 * 1024  # 16 KiB
MAX_PIECE_LENGTH = 16 * 1024 * 1024  # 16 MiB
MAX_PIECES = 2048
# Doubling size classes, 16 KiB .. 16 MiB. Keep stable: info-hashes depend on it.
PIECE_LENGTH_CLASSES = tuple(
    1 << exp
    for exp in range(MIN_PIECE_LENGTH.bit_length() - 1, MAX_PIECE_LENGTH.bit_length())
)


def piece_count_for(total_length: int, piece_length: int) -> int:
    return -(-total_length // piece_length)


def is_valid_piece_length(piece_length: int) -> bool:
    return (
        isinstance(piece_length, int)
        and piece_length >= MIN_PIECE_LENGTH
        and piece_length & (piece_length - 1) == 0
    )


def choose_piece_length(total_length: int) -> int:
    # smallest class keeping the piece count within MAX_PIECES
    for piece_length in PIECE_LENGTH_CLASSES:
        if piece_count_for(total_length, piece_length) <= MAX_PIECES:
            return piece_length
    return PIECE_LENGTH_CLASSES[-1]


def plan_pieces(total_length: int, piece_length: int | None = None) -> PieceLayout:
    if total_length <= 0:
        raise InvalidSizeError(f"Total content length must be positive, got {total_length}")

    if piece_length is None:
        piece_length = choose_piece_length(total_length)
    elif not is_valid_piece_length(piece_length):
        raise InvalidSizeError(
            f"Piece length must be a power of two of at least {MIN_PIECE_LENGTH} bytes, got {piece_length}"
        )

    layout = PieceLayout(piece_length, piece_count_for(total_length, piece_length), total_length)
    logger.info(
        f"Planned {layout.piece_count} pieces of {piece_length} bytes for {total_length} bytes"
    )
    return layout
