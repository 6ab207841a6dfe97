from pathlib import Path


class TorrentError(Exception):
    """Base class for everything the torrent authoring pipeline raises."""


class IoError(TorrentError):
    __slots__ = ("path",)

    def __init__(self, message: str, path: Path | str | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{message}: {self.path}"
        return message


class EmptyInputError(TorrentError):
    pass


class InvalidSizeError(TorrentError):
    pass


class EncodingError(TorrentError):
    pass


# not a fault; callers should not log it as one
class CancelledError(TorrentError):
    def __init__(self, message="Torrent creation cancelled"):
        super().__init__(message)
