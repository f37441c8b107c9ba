from __future__ import annotations

from storytool.enrich import (
    AttachmentsEnricher,
    RowEnricher,
    flat_attachments,
    splice_attachments,
    summary_comment,
)
from storytool.headers import build_attachments_layout, build_layout
from storytool.models import Attachment, BranchRef, Comment, PullRequestRef, Story

HEADER = ["Id", "Title", "Comment", "Comment", "Comment"]


def _att(name: str) -> Attachment:
    return Attachment(id=name, filename=name)


def _story(story_id: str = "100", **kwargs) -> Story:
    return Story(id=story_id, **kwargs)


def test_splice_before_trailing_parenthetical() -> None:
    out = splice_attachments("Looks good (approved)", [_att("report.pdf")])
    assert out == "Looks good\n---\nAttachments:\n* report.pdf\n---\n (approved)"


def test_splice_without_parenthetical_is_noop() -> None:
    assert splice_attachments("Looks good", [_att("report.pdf")]) == "Looks good"


def test_splice_without_parenthetical_can_append() -> None:
    out = splice_attachments("Looks good", [_att("a.png"), _att("b.png")], append_unmatched=True)
    assert out == "Looks good\n---\nAttachments:\n* a.png\n* b.png\n---\n"


def test_splice_only_uses_final_parenthetical() -> None:
    out = splice_attachments("Fix (see #2) done  (Ann - Jan 5, 2024)", [_att("log.txt")])
    assert out == "Fix (see #2) done\n---\nAttachments:\n* log.txt\n---\n (Ann - Jan 5, 2024)"


def test_summary_comment_lists_all_sources() -> None:
    story = _story(
        branches=[BranchRef("https://github.com/", "acme", "app", "feature-x")],
        pull_requests=[PullRequestRef("https://github.com/", "acme", "app", "7")],
    )
    assert summary_comment(story, ["Started [2024-01-01]"]) == (
        "Project Information\n---\n"
        "Branches:\n* https://github.com/acme/app/tree/feature-x\n"
        "\nPull Requests:\n* https://github.com/acme/app/pull/7\n"
        "\nAvailable History:\n* Started [2024-01-01]"
    )


def test_summary_comment_keeps_headings_for_empty_sections() -> None:
    assert summary_comment(_story(), []) == (
        "Project Information\n---\nBranches:\n\nPull Requests:\n\nAvailable History:"
    )


def test_join_miss_leaves_row_untouched() -> None:
    layout = build_layout(HEADER)
    enricher = RowEnricher(layout, {"100": _story()}, {})

    row = enricher.enrich(["999", "Other", "note (Ann)", "", ""])

    assert row == {
        "Id": "999",
        "Title": "Other",
        "Comment_1": "note (Ann)",
        "Comment_2": "",
        "Comment_3": "",
        "Comment_4": "",
    }
    assert enricher.stats.matched == 0
    assert enricher.stats.cells_rewritten == 0


def test_matched_row_rewrites_cells_and_adds_summary() -> None:
    story = _story(
        comments=[
            Comment("1", "first", [_att("a.png")]),
            Comment("2", "second", []),
            Comment("3", "third", [_att("b.pdf")]),
        ],
    )
    layout = build_layout(HEADER)
    enricher = RowEnricher(layout, {"100": story}, {"100": ["Started [2024-01-01]"]})

    row = enricher.enrich(["100", "Story", "first (Ann - Jan 1)", "second (Bob - Jan 2)", "third"])

    assert row["Comment_1"] == "first\n---\nAttachments:\n* a.png\n---\n (Ann - Jan 1)"
    assert row["Comment_2"] == "second (Bob - Jan 2)"
    assert row["Comment_3"] == "third"
    assert row["Comment_4"].startswith("Project Information\n---\n")
    assert row["Comment_4"].endswith("* Started [2024-01-01]")
    assert enricher.stats.cells_rewritten == 1


def test_summary_goes_to_first_slot_after_story_comments() -> None:
    story = _story(comments=[Comment("1", "only", [])])
    enricher = RowEnricher(build_layout(HEADER), {"100": story}, {})

    row = enricher.enrich(["100", "Story", "only (Ann)", "", ""])

    assert row["Comment_2"].startswith("Project Information")
    assert row["Comment_3"] == ""
    assert row["Comment_4"] == ""


def test_summary_overflow_uses_synthetic_column() -> None:
    story = _story(comments=[Comment(str(i), "c", []) for i in range(5)])
    enricher = RowEnricher(build_layout(HEADER), {"100": story}, {})

    row = enricher.enrich(["100", "Story", "a", "b", "c"])

    assert row["Comment_4"].startswith("Project Information")


def test_custom_matcher_replaces_positional_lookup() -> None:
    story = _story(comments=[Comment("1", "first", [_att("a.png")]), Comment("2", "second", [_att("b.png")])])

    def reversed_matcher(s: Story, slot: int):
        index = len(s.comments) - slot
        return s.comments[index] if 0 <= index < len(s.comments) else None

    enricher = RowEnricher(build_layout(HEADER), {"100": story}, {}, matcher=reversed_matcher)
    row = enricher.enrich(["100", "Story", "x (A)", "y (B)", ""])

    assert "* b.png" in row["Comment_1"]
    assert "* a.png" in row["Comment_2"]


def test_short_rows_are_padded() -> None:
    enricher = RowEnricher(build_layout(HEADER), {}, {})
    row = enricher.enrich(["100"])
    assert row["Title"] == ""
    assert row["Comment_4"] == ""


def test_flat_attachments_lists_every_file() -> None:
    story = _story(
        comments=[
            Comment("1", "a", [_att("a.png"), _att("b.png")]),
            Comment("2", "b", []),
            Comment("3", "c", [_att("c.txt")]),
        ]
    )
    assert flat_attachments(story) == "* a.png\n* b.png\n* c.txt"


def test_attachments_enricher_sets_column() -> None:
    story = _story(comments=[Comment("1", "a", [_att("a.png")])])
    enricher = AttachmentsEnricher(build_attachments_layout(["Id", "Comment"]), {"100": story})

    assert enricher.enrich(["100", "a"]) == {"Id": "100", "Comment": "a", "attachments": "* a.png"}
    assert enricher.enrich(["200", "b"]) == {"Id": "200", "Comment": "b", "attachments": ""}
