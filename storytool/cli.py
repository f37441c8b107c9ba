from __future__ import annotations

import argparse
import sys
from typing import Any

from storytool.config import load_dotenv, load_settings
from storytool.errors import StoryToolError
from storytool.pipeline import EnhanceOptions, EnhanceReport, run_attachments, run_enhance, run_fetch


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-k", "--api-key", help="Tracker API token (env: TRACKER_TOKEN)")
    parser.add_argument("-p", "--project-id", help="Tracker project id (env: TRACKER_PROJECT_ID)")
    parser.add_argument("-d", "--directory-path", help="Directory holding the exports (env: EXPORT_DIR)")
    parser.add_argument("-s", "--exported-stories", help="Stories export file name (env: STORIES_FILE)")
    parser.add_argument(
        "--strict-fetch",
        action="store_true",
        help="Fail the run when any page of the story fetch fails instead of keeping partial data",
    )


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json-dump",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Also write the fetched stories to stories_with_comments.json",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storytool")
    sub = parser.add_subparsers(dest="command", required=True)

    enhance = sub.add_parser("enhance", help="Splice attachments into comments and add a project information comment")
    _add_source_args(enhance)
    enhance.add_argument("--exported-history", help="History export file name (env: HISTORY_FILE)")
    enhance.add_argument(
        "--append-unmatched-attachments",
        action="store_true",
        help="Append the attachment block to comments that do not end in a parenthetical",
    )
    _add_output_args(enhance)

    attachments = sub.add_parser("attachments", help="Add a single attachments column to the stories export")
    _add_source_args(attachments)
    _add_output_args(attachments)

    fetch = sub.add_parser("fetch", help="Fetch stories and write them to stories_with_comments.json")
    _add_source_args(fetch)

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    keys = ("api_key", "project_id", "directory_path", "exported_stories", "exported_history")
    return {key: getattr(args, key, None) for key in keys}


def _print_report(report: EnhanceReport) -> None:
    status = "partial" if report.fetch_partial else "complete"
    print(f"stories_fetched: {report.stories_fetched} ({status})")
    print(f"rows: {report.rows}")
    print(f"matched: {report.matched}")
    print(f"cells_rewritten: {report.cells_rewritten}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "fetch":
            settings = load_settings(_overrides(args), require_stories=False)
            report = run_fetch(settings, EnhanceOptions(strict_fetch=args.strict_fetch))
            print(f"stories_fetched: {report.stories_fetched}")
            return 0

        if args.command == "attachments":
            settings = load_settings(_overrides(args))
            options = EnhanceOptions(strict_fetch=args.strict_fetch, json_dump=args.json_dump)
            _print_report(run_attachments(settings, options))
            return 0

        if args.command == "enhance":
            settings = load_settings(_overrides(args), require_history=True)
            options = EnhanceOptions(
                strict_fetch=args.strict_fetch,
                append_unmatched_attachments=args.append_unmatched_attachments,
                json_dump=args.json_dump,
            )
            _print_report(run_enhance(settings, options))
            return 0
    except (StoryToolError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.print_help(sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
