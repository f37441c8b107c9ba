from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any


DEFAULT_TRACKER_BASE_URL = "https://www.pivotaltracker.com/services/v5"
DEFAULT_STORY_FIELDS = "id,comments(id,text,attachments(id,filename)),pull_requests,branches"
JSON_DUMP_FILENAME = "stories_with_comments.json"


@dataclass(frozen=True)
class Settings:
    tracker_base_url: str
    tracker_token: str
    project_id: str
    export_dir: str
    stories_file: str
    history_file: str | None
    page_size: int
    request_timeout: int | None
    story_fields: str = DEFAULT_STORY_FIELDS

    @property
    def stories_url(self) -> str:
        return f"{self.tracker_base_url}/projects/{self.project_id}/stories"

    @property
    def stories_path(self) -> Path:
        return Path(self.export_dir) / self.stories_file

    @property
    def history_path(self) -> Path | None:
        if not self.history_file:
            return None
        return Path(self.export_dir) / self.history_file

    @property
    def json_dump_path(self) -> Path:
        return Path(self.export_dir) / JSON_DUMP_FILENAME


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def load_dotenv(path: str | None = None) -> list[str]:
    """Seed unset variables from an env file, by default ``$STORYTOOL_ENV_FILE`` or ``.env``.

    Lines may carry a shell ``export`` prefix. Returns the names that were set.
    """
    env_path = Path(path or os.getenv("STORYTOOL_ENV_FILE") or ".env")
    if not env_path.is_file():
        return []

    loaded: list[str] = []
    for line in env_path.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.strip().removeprefix("export ").partition("=")
        name = name.strip()
        if not sep or not name or name.startswith("#") or name in os.environ:
            continue
        os.environ[name] = _unquote(value.strip())
        loaded.append(name)
    return loaded


def _pick(overrides: dict[str, Any], key: str, env_name: str, default: str | None = None) -> str | None:
    value = overrides.get(key)
    if value is not None and str(value).strip():
        return str(value).strip()
    env_value = os.getenv(env_name)
    if env_value is not None and env_value.strip():
        return env_value.strip()
    return default


def _require(value: str | None, flag: str, env_name: str) -> str:
    if not value:
        raise ValueError(f"Provide {flag} or set {env_name}")
    return value


def load_settings(
    overrides: dict[str, Any] | None = None,
    *,
    require_stories: bool = True,
    require_history: bool = False,
) -> Settings:
    overrides = overrides or {}

    token = _require(_pick(overrides, "api_key", "TRACKER_TOKEN"), "--api-key", "TRACKER_TOKEN")
    project_id = _require(_pick(overrides, "project_id", "TRACKER_PROJECT_ID"), "--project-id", "TRACKER_PROJECT_ID")
    export_dir = _require(_pick(overrides, "directory_path", "EXPORT_DIR"), "--directory-path", "EXPORT_DIR")
    stories_file = _pick(overrides, "exported_stories", "STORIES_FILE") or ""
    if require_stories:
        _require(stories_file, "--exported-stories", "STORIES_FILE")
    history_file = _pick(overrides, "exported_history", "HISTORY_FILE")
    if require_history:
        _require(history_file, "--exported-history", "HISTORY_FILE")

    page_size = int(os.getenv("PAGE_SIZE", "500"))
    if page_size < 1:
        raise ValueError("PAGE_SIZE must be a positive integer")
    timeout = int(os.getenv("REQUEST_TIMEOUT", "0"))

    return Settings(
        tracker_base_url=(os.getenv("TRACKER_BASE_URL") or DEFAULT_TRACKER_BASE_URL).rstrip("/"),
        tracker_token=token,
        project_id=project_id,
        export_dir=export_dir,
        stories_file=stories_file,
        history_file=history_file,
        page_size=page_size,
        request_timeout=timeout if timeout > 0 else None,
    )
