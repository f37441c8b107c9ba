from __future__ import annotations

import csv
import json
import os
from pathlib import Path
from typing import Iterable, Iterator

from storytool.errors import ErrorKind, StoryToolError, io_error
from storytool.headers import HeaderLayout
from storytool.models import Story


def iter_export_rows(path: str | Path) -> Iterator[list[str]]:
    source = Path(path)
    try:
        with source.open("r", newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            next(reader, None)
            for row in reader:
                if row:
                    yield row
    except OSError as exc:
        raise io_error(exc, source) from exc
    except csv.Error as exc:
        raise StoryToolError(ErrorKind.PARSE, f"{source}: {exc}") from exc


def read_header(path: str | Path) -> list[str]:
    source = Path(path)
    try:
        with source.open("r", newline="", encoding="utf-8-sig") as f:
            header = next(csv.reader(f), None)
    except OSError as exc:
        raise io_error(exc, source) from exc
    except csv.Error as exc:
        raise StoryToolError(ErrorKind.PARSE, f"{source}: {exc}") from exc
    if header is None:
        raise StoryToolError(ErrorKind.PARSE, f"{source}: export is empty")
    return header


def write_enriched_csv(target: str | Path, layout: HeaderLayout, rows: Iterable[dict[str, str]]) -> int:
    """Write rows keyed by the working header under the original header row.

    Rows are streamed into a sibling temp file which then replaces ``target``,
    so ``rows`` may still be reading from ``target`` while this runs.
    """
    out = Path(target)
    tmp = out.with_name(f".{out.name}.tmp")
    count = 0
    try:
        with tmp.open("w", newline="", encoding="utf-8") as f:
            csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n").writerow(layout.original)
            writer = csv.DictWriter(
                f,
                fieldnames=layout.working,
                quoting=csv.QUOTE_ALL,
                lineterminator="\n",
                restval="",
            )
            for row in rows:
                writer.writerow(row)
                count += 1
        os.replace(tmp, out)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise io_error(exc, out) from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return count


def dump_stories_json(target: str | Path, stories: dict[str, Story]) -> Path:
    out = Path(target)
    payload = {story_id: story.to_dict() for story_id, story in stories.items()}
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    except OSError as exc:
        raise io_error(exc, out) from exc
    return out
