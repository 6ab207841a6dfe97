import os
from pathlib import Path

VERSION = "2.0.0"
APPLICATION_NAME = f"Quick Torrent Maker 2, v{VERSION}"

DATA_DIR = Path("data")
LOG_DIR = DATA_DIR / "logs"
TORRENT_DIR = DATA_DIR / "torrents"
DEFAULT_LOG_FILE = "qtm.log.jsonl"

TEXT_ENCODING = "UTF-8"
HASH_WORKERS = min(8, os.cpu_count() or 1)
READ_BLOCK_SIZE = 1 << 20  # 1 MiB reads inside a piece
PROGRESS_INTERVAL = 0.1  # seconds between progress queue drains


def default_comment(created_by: str) -> str:
    return f"This torrent was created by {created_by}"


def default_output_path(creation_date: int) -> Path:
    return TORRENT_DIR / f"qtm2-{creation_date}.torrent"
