import logging

import pytest
from pydantic import ValidationError

from fastpaillier.config import DEFAULT_MR_ROUNDS, Settings, get_settings
from fastpaillier.logs import PackageHandler, configure_logging


@pytest.fixture()
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_settings_from_environment(monkeypatch, fresh_settings):
    monkeypatch.setenv("FASTPAILLIER_KEY_BITS", "2048")
    monkeypatch.setenv("FASTPAILLIER_LOG_LEVEL", "debug")
    monkeypatch.delenv("FASTPAILLIER_MR_ROUNDS", raising=False)
    settings = fresh_settings()
    assert settings.key_bits == 2048
    assert settings.log_level == "DEBUG"
    assert settings.mr_rounds == DEFAULT_MR_ROUNDS


def test_settings_validation(monkeypatch, fresh_settings):
    monkeypatch.setenv("FASTPAILLIER_KEY_BITS", "8")
    with pytest.raises(ValidationError):
        fresh_settings()


def test_settings_are_frozen():
    with pytest.raises(ValidationError):
        Settings().key_bits = 1


def test_configure_logging_is_idempotent():
    logger = configure_logging("WARNING")
    configure_logging("WARNING")
    ours = [h for h in logger.handlers if isinstance(h, PackageHandler)]
    assert len(ours) == 1
    assert logger.level == logging.WARNING


def test_workers_default_to_inline(monkeypatch, fresh_settings):
    monkeypatch.delenv("FASTPAILLIER_WORKERS", raising=False)
    assert fresh_settings().workers == 1
