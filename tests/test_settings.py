import pytest
from pydantic import ValidationError

from taskboard.config import Settings


def test_defaults_from_environment():
    s = Settings()
    assert s.ordering_concurrency == "lock"
    assert s.station_validation == "strict"
    assert s.soft_station_validation is False


def test_strategy_is_normalised(monkeypatch):
    monkeypatch.setenv("ORDERING_CONCURRENCY", "VERSION")
    monkeypatch.setenv("STATION_VALIDATION", "Soft")
    s = Settings()
    assert s.ordering_concurrency == "version"
    assert s.soft_station_validation is True


@pytest.mark.parametrize("field", ["ordering_concurrency", "station_validation"])
def test_invalid_mode_is_rejected(field):
    with pytest.raises(ValidationError):
        Settings(**{field: "optimistisch"})


def test_sqlite_fallback_url(tmp_path):
    s = Settings(database_url=None, data_dir=str(tmp_path))
    assert s.effective_database_url == f"sqlite:///{tmp_path / 'taskboard.db'}"


def test_explicit_database_url_wins():
    s = Settings(database_url="postgresql://board@db:5432/taskboard")
    assert s.effective_database_url == "postgresql://board@db:5432/taskboard"


def test_cors_origin_list():
    s = Settings(cors_origins="http://a.local, http://b.local,")
    assert s.cors_origin_list == ["http://a.local", "http://b.local"]


def test_event_keepalive_must_be_positive(monkeypatch):
    monkeypatch.setenv("EVENT_KEEPALIVE_SECONDS", "2.5")
    assert Settings().event_keepalive_seconds == 2.5
    with pytest.raises(ValidationError):
        Settings(event_keepalive_seconds=0)
