from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

from scribeflow.config import Settings
from scribeflow.pipeline.policy import TranscriptionPolicy

_TESTS_ROOT = Path(__file__).resolve().parent
if str(_TESTS_ROOT) not in sys.path:
    sys.path.insert(0, str(_TESTS_ROOT))


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def make_policy(settings: Settings):
    def _make(**overrides: Any) -> TranscriptionPolicy:
        values: dict[str, Any] = {"retry_attempts": 1, "retry_wait_min_s": 0, "retry_wait_max_s": 0}
        values.update(overrides)
        return TranscriptionPolicy.from_settings(settings, None, values)

    return _make


@pytest.fixture()
def source_file(tmp_path) -> Path:
    p = tmp_path / "input" / "talk.m4a"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"original-audio")
    return p
