import logging

import pytest

from worldclim_query import logging_config
from worldclim_query.errors import InvalidRangeError, ValidationError
from worldclim_query.settings import Settings


def test_settings_defaults(monkeypatch):
    for name in ("DUCKDB_DB_PATH", "DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT", "VARIABLE_REGISTRY_PATH", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.duckdb_path == "/data/worldclim.duckdb"
    assert s.default_page_limit == 10
    assert s.max_page_limit == 10000
    assert s.variable_registry_path is None
    assert s.cors_origins == ["http://localhost:8000", "http://127.0.0.1:8000"]


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("WORLDCLIM_TABLE", " wc ")
    monkeypatch.setenv("MAX_PAGE_LIMIT", "50")
    monkeypatch.setenv("DUCKDB_SPATIAL_INSTALL", "False")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, ,https://b.example")
    s = Settings.from_env()
    assert s.worldclim_table == "wc"
    assert s.max_page_limit == 50
    assert s.duckdb_spatial_install is False
    assert s.cors_origins == ["https://a.example", "https://b.example"]


@pytest.fixture
def fresh_logger():
    logger = logging.getLogger(logging_config.LOGGER_NAME)
    saved = logger.handlers[:]
    logger.handlers.clear()
    yield logger
    for h in logger.handlers:
        h.close()
    logger.handlers[:] = saved


def test_setup_logging_console_only(fresh_logger):
    logger = logging_config.setup_logging(level="info", log_file="")
    assert logger is fresh_logger
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.INFO
    # second call keeps the existing handlers
    logging_config.setup_logging(level="debug")
    assert len(logger.handlers) == 1


def test_setup_logging_file(fresh_logger, tmp_path):
    log_file = tmp_path / "wc.log"
    logger = logging_config.setup_logging(level="WARNING", log_file=str(log_file))
    assert len(logger.handlers) == 2
    logger.debug("compiled")
    for h in logger.handlers:
        h.flush()
    assert "compiled" in log_file.read_text()


def test_setup_logging_rejects_unknown_level(fresh_logger):
    with pytest.raises(ValueError):
        logging_config.setup_logging(level="chatty")


def test_error_payloads():
    e = ValidationError("page_limit", "must be >= 0.")
    assert e.to_dict() == {"field": "page_limit", "detail": "must be >= 0."}
    r = InvalidRangeError(10, 5)
    assert isinstance(r, ValidationError)
    assert r.field == "distance_bounds"
    assert (r.minimum, r.maximum) == (10, 5)
