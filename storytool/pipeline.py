from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from storytool.config import Settings
from storytool.enrich import AttachmentsEnricher, CommentMatcher, RowEnricher, positional_matcher
from storytool.errors import ErrorKind, StoryToolError
from storytool.export import dump_stories_json, iter_export_rows, read_header, write_enriched_csv
from storytool.headers import build_attachments_layout, build_layout
from storytool.history import build_history_index
from storytool.tracker_client import FetchResult, TrackerSourceClient


@dataclass(frozen=True)
class EnhanceOptions:
    strict_fetch: bool = False
    append_unmatched_attachments: bool = False
    json_dump: bool = True
    matcher: CommentMatcher = positional_matcher


@dataclass
class EnhanceReport:
    output_path: Path
    stories_fetched: int
    fetch_partial: bool
    rows: int = 0
    matched: int = 0
    cells_rewritten: int = 0
    json_path: Path | None = None


def _fetch(settings: Settings, options: EnhanceOptions) -> FetchResult:
    client = TrackerSourceClient(settings)
    result = client.fetch_stories(strict=options.strict_fetch)
    if result.partial:
        print(
            f"[fetch] continuing with partial data: {len(result.stories)} stories "
            f"from {result.pages} page(s)"
        )
    return result


def _dump(settings: Settings, options: EnhanceOptions, fetched: FetchResult) -> Path | None:
    if not options.json_dump:
        return None
    path = dump_stories_json(settings.json_dump_path, fetched.stories)
    print(f"Data saved to {path}")
    return path


def run_fetch(settings: Settings, options: EnhanceOptions) -> EnhanceReport:
    fetched = _fetch(settings, options)
    report = EnhanceReport(
        output_path=settings.json_dump_path,
        stories_fetched=len(fetched.stories),
        fetch_partial=fetched.partial,
    )
    report.json_path = dump_stories_json(settings.json_dump_path, fetched.stories)
    print(f"Data saved to {report.json_path}")
    return report


def run_enhance(settings: Settings, options: EnhanceOptions) -> EnhanceReport:
    history_path = settings.history_path
    if history_path is None:
        raise StoryToolError(ErrorKind.NOT_FOUND, "no history export configured")

    # Remote fetch and history parse share no state.
    with ThreadPoolExecutor(max_workers=2) as executor:
        fetch_future = executor.submit(_fetch, settings, options)
        history_future = executor.submit(build_history_index, history_path)
        history = history_future.result()
        fetched = fetch_future.result()
    print(f"[history] {sum(len(v) for v in history.values())} entries for {len(history)} stories")

    stories_path = settings.stories_path
    layout = build_layout(read_header(stories_path))
    enricher = RowEnricher(
        layout,
        fetched.stories,
        history,
        matcher=options.matcher,
        append_unmatched_attachments=options.append_unmatched_attachments,
    )
    write_enriched_csv(stories_path, layout, (enricher.enrich(cells) for cells in iter_export_rows(stories_path)))
    print(f"Transformed CSV saved to {stories_path}")

    report = EnhanceReport(
        output_path=stories_path,
        stories_fetched=len(fetched.stories),
        fetch_partial=fetched.partial,
        rows=enricher.stats.rows,
        matched=enricher.stats.matched,
        cells_rewritten=enricher.stats.cells_rewritten,
    )
    report.json_path = _dump(settings, options, fetched)
    return report


def run_attachments(settings: Settings, options: EnhanceOptions) -> EnhanceReport:
    fetched = _fetch(settings, options)

    stories_path = settings.stories_path
    layout = build_attachments_layout(read_header(stories_path))
    enricher = AttachmentsEnricher(layout, fetched.stories)
    write_enriched_csv(stories_path, layout, (enricher.enrich(cells) for cells in iter_export_rows(stories_path)))
    print(f"Transformed CSV saved to {stories_path}")

    report = EnhanceReport(
        output_path=stories_path,
        stories_fetched=len(fetched.stories),
        fetch_partial=fetched.partial,
        rows=enricher.stats.rows,
        matched=enricher.stats.matched,
    )
    report.json_path = _dump(settings, options, fetched)
    return report
