from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    PARSE = "parse"
    IO = "io"
    NOT_FOUND = "not_found"


class StoryToolError(Exception):
    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.args[0]}"


class TrackerError(StoryToolError):
    """Failure talking to the tracker API; carries the page offset that failed."""

    def __init__(self, kind: ErrorKind, message: str, offset: int | None = None) -> None:
        super().__init__(kind, message)
        self.offset = offset


def io_error(exc: OSError, path: object) -> StoryToolError:
    if isinstance(exc, FileNotFoundError):
        return StoryToolError(ErrorKind.NOT_FOUND, f"file not found: {path}")
    return StoryToolError(ErrorKind.IO, f"{path}: {exc}")
