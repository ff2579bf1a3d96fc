import json
import logging
from pathlib import Path

import pytest

from src.applytrack.core.config_loader import clear_config_cache
from src.applytrack.core.log_config import configure_logging


@pytest.fixture()
def restore_root_level():
    root = logging.getLogger()
    previous = root.level
    yield root
    root.setLevel(previous)


def test_configure_logging_explicit_level(restore_root_level):
    assert configure_logging("debug") == logging.DEBUG
    assert restore_root_level.level == logging.DEBUG


def test_configure_logging_reads_config_level(restore_root_level, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"logging": {"level": "WARNING"}}), encoding="utf-8")
    monkeypatch.setenv("APPLYTRACK_CONFIG_PATH", str(config_path))
    clear_config_cache()
    assert configure_logging() == logging.WARNING


def test_configure_logging_unknown_level_falls_back_to_info(restore_root_level):
    assert configure_logging("chatty") == logging.INFO
