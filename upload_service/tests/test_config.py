import logging
from pathlib import Path

import config
from config import UploadSettings
from logger_config import LOGGER_NAME, setup_logger


def test_defaults():
    settings = UploadSettings(upload_dir=Path("uploads"))
    assert settings.max_image_size == 10485760
    assert settings.max_other_size == 15728640
    assert settings.chunk_size == config.CHUNK_SIZE


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("HOST", "127.0.0.1")

    settings = UploadSettings.from_env()
    assert settings.upload_dir == (tmp_path / "store").absolute()
    assert settings.port == 9100
    assert settings.host == "127.0.0.1"


def test_from_env_port_default(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    assert UploadSettings.from_env().port == config.PORT


def test_explicit_upload_dir_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", "/somewhere/else")
    assert UploadSettings.from_env(str(tmp_path)).upload_dir == tmp_path


def test_setup_logger_is_idempotent():
    first = setup_logger()
    handler_count = len(first.handlers)
    second = setup_logger()
    assert first is second is logging.getLogger(LOGGER_NAME)
    assert len(second.handlers) == handler_count == 2
