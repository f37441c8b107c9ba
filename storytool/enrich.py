from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from storytool.errors import ErrorKind, StoryToolError
from storytool.headers import HeaderLayout
from storytool.models import Attachment, Comment, Story

SUMMARY_TITLE = "Project Information"
SUMMARY_SEPARATOR = "---"
TRAILING_PARENTHETICAL_RE = re.compile(r"\s*(\([^()]*\))\Z")

# Maps (story, comment slot number) to the remote comment shown in that slot.
CommentMatcher = Callable[[Story, int], "Comment | None"]


def positional_matcher(story: Story, slot: int) -> Comment | None:
    # Slot N holds the N-th remote comment; the export carries no comment ids.
    index = slot - 1
    if 0 <= index < len(story.comments):
        return story.comments[index]
    return None


def attachment_block(attachments: list[Attachment]) -> str:
    bullets = "".join(f"* {a.filename}\n" for a in attachments)
    return f"\n---\nAttachments:\n{bullets}---\n"


def splice_attachments(cell: str, attachments: list[Attachment], *, append_unmatched: bool = False) -> str:
    if not attachments:
        return cell
    block = attachment_block(attachments)
    match = TRAILING_PARENTHETICAL_RE.search(cell)
    if match:
        return f"{cell[: match.start()]}{block} {match.group(1)}"
    if append_unmatched:
        return f"{cell}{block}"
    return cell


def summary_comment(story: Story, history_lines: list[str]) -> str:
    lines = [
        SUMMARY_TITLE,
        SUMMARY_SEPARATOR,
        "Branches:",
        *[f"* {b.url}" for b in story.branches],
        "\nPull Requests:",
        *[f"* {p.url}" for p in story.pull_requests],
        "\nAvailable History:",
        *[f"* {h}" for h in history_lines],
    ]
    return "\n".join(line for line in lines if line)


def flat_attachments(story: Story) -> str:
    return "\n".join(
        "\n".join(f"* {a.filename}" for a in comment.attachments)
        for comment in story.comments
        if comment.attachments
    )


@dataclass
class EnrichStats:
    rows: int = 0
    matched: int = 0
    cells_rewritten: int = 0
    summaries: int = 0


class _BaseEnricher:
    def __init__(self, layout: HeaderLayout, stories: dict[str, Story]) -> None:
        self.layout = layout
        self.stories = stories
        self.stats = EnrichStats()
        self._source_fields = layout.source_fields()

    def _to_row(self, cells: list[str]) -> dict[str, str]:
        if len(cells) > len(self._source_fields):
            raise StoryToolError(
                ErrorKind.PARSE,
                f"row {self.stats.rows + 1} has {len(cells)} cells but the header has {len(self._source_fields)}",
            )
        padded = list(cells) + [""] * (len(self._source_fields) - len(cells))
        row = dict(zip(self._source_fields, padded))
        row[self.layout.synthetic_field] = ""
        return row

    def _lookup(self, cells: list[str]) -> Story | None:
        story_id = cells[0].strip() if cells else ""
        return self.stories.get(story_id) if story_id else None


class RowEnricher(_BaseEnricher):
    def __init__(
        self,
        layout: HeaderLayout,
        stories: dict[str, Story],
        history: dict[str, list[str]],
        *,
        matcher: CommentMatcher = positional_matcher,
        append_unmatched_attachments: bool = False,
    ) -> None:
        super().__init__(layout, stories)
        self.history = history
        self.matcher = matcher
        self.append_unmatched_attachments = append_unmatched_attachments

    def _rewrite_comment_cells(self, row: dict[str, str], story: Story) -> None:
        slot = 1
        while slot in self.layout.comment_slots:
            field_name = self.layout.comment_slots[slot]
            comment = self.matcher(story, slot)
            if comment is not None and comment.attachments:
                before = row[field_name]
                row[field_name] = splice_attachments(
                    before,
                    comment.attachments,
                    append_unmatched=self.append_unmatched_attachments,
                )
                if row[field_name] != before:
                    self.stats.cells_rewritten += 1
            slot += 1

    def _summary_field(self, story: Story) -> str:
        # First slot past the story's comments; overflow lands in the synthetic column.
        return self.layout.comment_slots.get(len(story.comments) + 1, self.layout.synthetic_field)

    def enrich(self, cells: list[str]) -> dict[str, str]:
        row = self._to_row(cells)
        self.stats.rows += 1
        story = self._lookup(cells)
        if story is None:
            return row

        self.stats.matched += 1
        self._rewrite_comment_cells(row, story)
        row[self._summary_field(story)] = summary_comment(story, self.history.get(story.id, []))
        self.stats.summaries += 1
        return row


class AttachmentsEnricher(_BaseEnricher):
    """Older single-column variant: every attachment filename, one bullet per line."""

    def enrich(self, cells: list[str]) -> dict[str, str]:
        row = self._to_row(cells)
        self.stats.rows += 1
        story = self._lookup(cells)
        if story is not None:
            self.stats.matched += 1
            row[self.layout.synthetic_field] = flat_attachments(story)
        return row
