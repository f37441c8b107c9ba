from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolate_test_environment(monkeypatch, tmp_path: Path):
    for name in (
        "TRACKER_TOKEN",
        "TRACKER_PROJECT_ID",
        "TRACKER_BASE_URL",
        "EXPORT_DIR",
        "STORIES_FILE",
        "HISTORY_FILE",
        "PAGE_SIZE",
        "REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STORYTOOL_ENV_FILE", str(tmp_path / ".nonexistent"))
