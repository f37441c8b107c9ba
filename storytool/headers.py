from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

COMMENT_LABEL = "Comment"
ATTACHMENTS_FIELD = "attachments"
_COMMENT_SLOT_RE = re.compile(r"^Comment_(\d+)$")


@dataclass(frozen=True)
class HeaderLayout:
    """Header rows for one export.

    ``working`` holds the unique names used to key rows while enriching;
    ``original`` is what gets written back, duplicates included. Both carry
    the synthetic column at ``insert_at``.
    """

    original: list[str]
    working: list[str]
    insert_at: int
    synthetic_field: str
    comment_slots: dict[int, str]

    def source_fields(self) -> list[str]:
        return self.working[: self.insert_at] + self.working[self.insert_at + 1 :]


def disambiguate_headers(header_row: list[str]) -> list[str]:
    totals = Counter(header_row)
    seen: Counter[str] = Counter()
    working: list[str] = []
    for name in header_row:
        if totals[name] == 1:
            working.append(name)
            continue
        seen[name] += 1
        working.append(f"{name}_{seen[name]}")
    return working


def find_comment_slots(working: list[str]) -> dict[int, str]:
    slots: dict[int, str] = {}
    for name in working:
        match = _COMMENT_SLOT_RE.match(name)
        if match:
            slots[int(match.group(1))] = name
        elif name == COMMENT_LABEL:
            slots.setdefault(1, name)
    return slots


def build_layout(header_row: list[str]) -> HeaderLayout:
    working = disambiguate_headers(header_row)
    slots = find_comment_slots(working)

    if slots:
        last = max(slots)
        insert_at = working.index(slots[last]) + 1
        synthetic = f"{COMMENT_LABEL}_{last + 1}"
    else:
        insert_at = len(working)
        synthetic = f"{COMMENT_LABEL}_1"

    if synthetic in working:
        raise ValueError(f"header already contains a column named {synthetic!r}")

    return HeaderLayout(
        original=header_row[:insert_at] + [COMMENT_LABEL] + header_row[insert_at:],
        working=working[:insert_at] + [synthetic] + working[insert_at:],
        insert_at=insert_at,
        synthetic_field=synthetic,
        comment_slots=slots,
    )


def build_attachments_layout(header_row: list[str]) -> HeaderLayout:
    working = disambiguate_headers(header_row)
    if ATTACHMENTS_FIELD in working:
        raise ValueError(f"header already contains a column named {ATTACHMENTS_FIELD!r}")
    return HeaderLayout(
        original=header_row + [ATTACHMENTS_FIELD],
        working=working + [ATTACHMENTS_FIELD],
        insert_at=len(working),
        synthetic_field=ATTACHMENTS_FIELD,
        comment_slots=find_comment_slots(working),
    )
