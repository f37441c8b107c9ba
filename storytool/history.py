from __future__ import annotations

import csv
from pathlib import Path

from storytool.errors import ErrorKind, StoryToolError, io_error

ID_COLUMN = "ID"
MESSAGE_COLUMN = "Message"
OCCURRED_AT_COLUMN = "Occurred At"
REQUIRED_COLUMNS = (ID_COLUMN, MESSAGE_COLUMN, OCCURRED_AT_COLUMN)


def format_history_line(message: str, occurred_at: str) -> str:
    return f"{message} [{occurred_at}]"


def build_history_index(path: str | Path) -> dict[str, list[str]]:
    index: dict[str, list[str]] = {}
    try:
        with Path(path).open("r", newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
            if missing:
                raise StoryToolError(ErrorKind.PARSE, f"{path}: missing history columns {', '.join(missing)}")
            for row in reader:
                story_id = (row.get(ID_COLUMN) or "").strip()
                if not story_id:
                    continue
                line = format_history_line(row.get(MESSAGE_COLUMN) or "", row.get(OCCURRED_AT_COLUMN) or "")
                index.setdefault(story_id, []).append(line)
    except OSError as exc:
        raise io_error(exc, path) from exc
    except csv.Error as exc:
        raise StoryToolError(ErrorKind.PARSE, f"{path}: {exc}") from exc
    return index
