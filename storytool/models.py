from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Attachment:
    id: str
    filename: str


@dataclass(frozen=True)
class Comment:
    id: str
    text: str
    attachments: list[Attachment] = field(default_factory=list)


@dataclass(frozen=True)
class PullRequestRef:
    host_url: str
    owner: str
    repo: str
    number: str

    @property
    def url(self) -> str:
        return f"{self.host_url}{self.owner}/{self.repo}/pull/{self.number}"


@dataclass(frozen=True)
class BranchRef:
    host_url: str
    owner: str
    repo: str
    name: str

    @property
    def url(self) -> str:
        return f"{self.host_url}{self.owner}/{self.repo}/tree/{self.name}"


@dataclass(frozen=True)
class Story:
    id: str
    comments: list[Comment] = field(default_factory=list)
    pull_requests: list[PullRequestRef] = field(default_factory=list)
    branches: list[BranchRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _text(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


def _items(raw: dict[str, Any], key: str) -> list[dict[str, Any]]:
    # Nested refs are taken as-is; entries that are not objects are skipped.
    return [item for item in raw.get(key) or [] if isinstance(item, dict)]


def _to_attachment(raw: dict[str, Any]) -> Attachment:
    return Attachment(id=_text(raw, "id"), filename=_text(raw, "filename"))


def _to_comment(raw: dict[str, Any]) -> Comment:
    return Comment(
        id=_text(raw, "id"),
        text=_text(raw, "text"),
        attachments=[_to_attachment(a) for a in _items(raw, "attachments")],
    )


def _to_pull_request(raw: dict[str, Any]) -> PullRequestRef:
    return PullRequestRef(
        host_url=_text(raw, "host_url"),
        owner=_text(raw, "owner"),
        repo=_text(raw, "repo"),
        number=_text(raw, "number"),
    )


def _to_branch(raw: dict[str, Any]) -> BranchRef:
    return BranchRef(
        host_url=_text(raw, "host_url"),
        owner=_text(raw, "owner"),
        repo=_text(raw, "repo"),
        name=_text(raw, "name"),
    )


def story_from_api(raw: dict[str, Any]) -> Story:
    """Build a Story from one tracker API payload item.

    Only the story id is required; a missing one raises ``ValueError``, which
    the client reports as a parse error. Nested fields are kept as given.
    """
    story_id = _text(raw, "id").strip()
    if not story_id:
        raise ValueError("story is missing an id")
    return Story(
        id=story_id,
        comments=[_to_comment(c) for c in _items(raw, "comments")],
        pull_requests=[_to_pull_request(p) for p in _items(raw, "pull_requests")],
        branches=[_to_branch(b) for b in _items(raw, "branches")],
    )
