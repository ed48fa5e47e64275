from __future__ import annotations

import logging
from pathlib import Path

import pytest

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError
from scribeflow.utils.logging_setup import setup_logging


def test_provider_requires_api_key_from_environment(settings: Settings) -> None:
    settings.openai.api_key = ""

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        settings.provider_config_for("openai")


def test_provider_config_includes_name_and_key(settings: Settings) -> None:
    settings.lemonfox.api_key = "  lf-key  "

    cfg = settings.provider_config_for("LemonFox")

    assert cfg["api_key"] == "lf-key"
    assert cfg["name"] == "lemonfox"
    assert cfg["response_format"] == "text"


def test_default_provider_is_used_when_none_given(settings: Settings) -> None:
    settings.default_provider = "glm"

    cfg = settings.provider_config_for(None)

    assert cfg["name"] == "glm_asr"
    assert cfg["provider"] == "glm_asr"
    assert cfg["api_key"] == ""


def test_unknown_provider(settings: Settings) -> None:
    with pytest.raises(ConfigurationError, match="Unknown ASR provider"):
        settings.provider_config_for("deepgram")


def test_data_paths_are_absolute_and_created(tmp_path) -> None:
    s = Settings(data_dir=str(tmp_path / "d"), log_dir=str(tmp_path / "l"))

    assert Path(s.data_dir).is_absolute()
    assert Path(s.data_dir).is_dir()
    assert "postgresql://" in s.database_url


def test_setup_logging_writes_to_log_dir(settings: Settings) -> None:
    logger = logging.getLogger("scribeflow")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    if hasattr(logger, "_scribeflow_configured"):
        delattr(logger, "_scribeflow_configured")
    settings.logging.console = False
    settings.logging.file = "scribeflow.log"
    try:
        configured = setup_logging(settings, level="debug")
        assert configured is logger
        assert logger.level == logging.DEBUG
        assert setup_logging(settings) is logger
        logging.getLogger("scribeflow.pipeline.test").debug("hello log")
        for h in logger.handlers:
            h.flush()

        log_file = Path(settings.log_dir) / "scribeflow.log"
        assert "hello log" in log_file.read_text(encoding="utf-8")
    finally:
        for h in logger.handlers:
            h.close()
        logger.handlers = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]
        if hasattr(logger, "_scribeflow_configured"):
            delattr(logger, "_scribeflow_configured")
