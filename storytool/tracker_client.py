from __future__ import annotations

import http.client
import json
import sys
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from storytool.config import Settings
from storytool.errors import ErrorKind, TrackerError
from storytool.models import Story, story_from_api

PAGINATION_KEYS = ("offset", "limit", "returned", "total")
PAGINATION_PREFIX = "x-tracker-pagination-"


@dataclass(frozen=True)
class PageInfo:
    offset: int
    limit: int
    returned: int | None
    total: int | None

    @property
    def has_more(self) -> bool:
        if self.total is None:
            return False
        return self.offset + self.limit < self.total


@dataclass
class FetchResult:
    stories: dict[str, Story] = field(default_factory=dict)
    errors: list[TrackerError] = field(default_factory=list)
    pages: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.errors)


def _header_int(headers: dict[str, str], key: str) -> int | None:
    lowered = {k.lower(): v for k, v in headers.items()}
    raw = lowered.get(key)
    if raw is None:
        raw = lowered.get(PAGINATION_PREFIX + key)
    if raw is None or str(raw).strip() == "":
        return None
    return int(str(raw).strip())


def parse_page_info(headers: dict[str, str], requested_offset: int, requested_limit: int) -> PageInfo:
    values = {key: _header_int(headers, key) for key in PAGINATION_KEYS}
    offset = values["offset"]
    limit = values["limit"]
    return PageInfo(
        offset=requested_offset if offset is None else offset,
        limit=requested_limit if limit is None or limit < 1 else limit,
        returned=values["returned"],
        total=values["total"],
    )


class TrackerSourceClient:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _request(self, url: str, params: dict[str, Any]) -> tuple[Any, dict[str, str]]:
        query = urllib.parse.urlencode(params)
        req = urllib.request.Request(
            f"{url}?{query}" if query else url,
            headers={
                "X-TrackerToken": self.settings.tracker_token,
                "Content-Type": "application/json",
                "User-Agent": "storytool/0.1.0",
            },
        )
        with urllib.request.urlopen(req, timeout=self.settings.request_timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
            return payload, dict(resp.headers.items())

    def _fetch_page(self, offset: int) -> tuple[list[Story], PageInfo]:
        limit = self.settings.page_size
        try:
            payload, headers = self._request(
                self.settings.stories_url,
                {
                    "fields": self.settings.story_fields,
                    "limit": limit,
                    "offset": offset,
                },
            )
        except urllib.error.HTTPError as exc:
            kind = ErrorKind.NOT_FOUND if exc.code == 404 else ErrorKind.TRANSPORT
            raise TrackerError(kind, f"HTTP {exc.code} fetching stories at offset {offset}", offset) from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            raise TrackerError(ErrorKind.TRANSPORT, f"request failed at offset {offset}: {exc}", offset) from exc
        except ValueError as exc:
            raise TrackerError(ErrorKind.PARSE, f"invalid JSON at offset {offset}: {exc}", offset) from exc

        if not isinstance(payload, list):
            raise TrackerError(ErrorKind.PARSE, f"expected a list of stories at offset {offset}", offset)
        try:
            stories = [story_from_api(item) for item in payload]
            info = parse_page_info(headers, offset, limit)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise TrackerError(ErrorKind.PARSE, f"malformed page at offset {offset}: {exc}", offset) from exc
        return stories, info

    def fetch_stories(self, *, strict: bool = False) -> FetchResult:
        """Fetch every story of the project, one page at a time.

        A failed page ends the fetch. With ``strict`` the error is raised,
        otherwise the result keeps whatever was accumulated and records the
        error.
        """
        result = FetchResult()
        offset = 0
        while True:
            try:
                stories, info = self._fetch_page(offset)
            except TrackerError as exc:
                if strict:
                    raise
                print(f"[fetch] Error fetching stories: {exc}", file=sys.stderr)
                result.errors.append(exc)
                break

            for story in stories:
                result.stories[story.id] = story
            result.pages += 1
            print(
                f"[fetch] page offset={info.offset} limit={info.limit} "
                f"returned={info.returned if info.returned is not None else len(stories)} "
                f"total={info.total if info.total is not None else '?'}"
            )
            if not info.has_more:
                break
            offset = info.offset + info.limit

        return result
