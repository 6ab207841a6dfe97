#!/usr/bin/env python3
"""
Quick Torrent Maker - create .torrent files from a file or directory
Main entry point for the command line front-end.
"""

import argparse
import sys
import threading
import logging
from pathlib import Path

from qtm.common.config import APPLICATION_NAME, DEFAULT_LOG_FILE, HASH_WORKERS, LOG_DIR
from qtm.common.errors import CancelledError, TorrentError
from qtm.common.logging import config_logging
from qtm.torrent.builder import create_torrent
from qtm.torrent.metadata import format_size

logger = logging.getLogger(__name__)


def print_progress(pieces_done: int, pieces_total: int, bytes_done: int, bytes_total: int):
    percent = 100 * bytes_done / bytes_total if bytes_total else 100.0
    print(
        f"\rHashing: {pieces_done}/{pieces_total} pieces "
        f"({format_size(bytes_done)} / {format_size(bytes_total)}, {percent:.1f}%)",
        end="",
        flush=True,
    )


def make_torrent(args: argparse.Namespace) -> int:
    cancel = threading.Event()
    try:
        logger.info(f"Creating torrent for {args.path}")
        summary = create_torrent(
            args.path,
            args.output,
            args.announce,
            private=args.private,
            piece_length=args.piece_length,
            comment=args.comment,
            exclude=args.exclude,
            workers=args.workers,
            progress=None if args.quiet else print_progress,
            cancel=cancel,
        )
    except KeyboardInterrupt:
        cancel.set()
        print("\n\n⚠ Torrent creation interrupted by user")
        logger.info("Torrent creation cancelled by user")
        return 130
    except CancelledError as e:
        print(f"\n\n⚠ {e}")
        logger.info(str(e))
        return 130
    except TorrentError as e:
        logger.error(f"Torrent creation failed: {e}", exc_info=True)
        print(f"\n✗ Torrent creation failed: {e}")
        return 1

    print(f"\n\n{'='*60}")
    print(summary.describe())
    print(f"Magnet: {summary.magnet_uri}")
    print(f"{'='*60}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qtm",
        description=f"{APPLICATION_NAME} - create .torrent files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s movie.mkv -a http://tracker.example/announce
  %(prog)s album/ -a http://a.example/announce -a udp://b.example:6969 --private
  %(prog)s dataset/ -a http://tracker.example/announce -o dataset.torrent --exclude '*.tmp'
        """,
    )

    parser.add_argument("path", type=Path, help="File or directory to create a torrent for")

    parser.add_argument(
        "-a", "--announce",
        action="append",
        required=True,
        help="Tracker announce URL; repeat for an announce list",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output .torrent path (default: data/torrents/qtm2-<timestamp>.torrent)",
    )

    parser.add_argument("--private", action="store_true", help="Mark the torrent as private")

    parser.add_argument(
        "--piece-length",
        type=int,
        default=None,
        help="Piece length in bytes, a power of two >= 16384 (default: chosen from content size)",
    )

    parser.add_argument("--comment", default=None, help="Comment stored in the torrent")

    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="GLOB",
        help="Leave out files matching this glob; may be repeated",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=HASH_WORKERS,
        help=f"Number of hashing threads (default: {HASH_WORKERS})",
    )

    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print hashing progress")

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file name under {LOG_DIR} (default: {DEFAULT_LOG_FILE})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the qtm command."""
    args = build_parser().parse_args(argv)

    if args.workers < 1:
        print("Error: --workers must be at least 1")
        return 2

    config_logging(args.log_file, verbose=args.verbose)

    print("\n" + "=" * 60)
    print(f"  {APPLICATION_NAME}")
    print("=" * 60)

    return make_torrent(args)


if __name__ == "__main__":
    sys.exit(main())
