"""Tests for configuration loading."""

from family_tasks.core.config import Constants, Settings


def test_defaults(monkeypatch) -> None:
    """Test defaults when nothing is configured."""
    for name in ("SQLITE_DB_PATH", "MEDIA_ROOT", "TIMEZONE", "ENVIRONMENT", "GENERATE_ON_STARTUP"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "data/family_tasks.sqlite3"
    assert settings.timezone == "UTC"
    assert settings.generate_on_startup is True
    assert settings.is_production is False


def test_environment_overrides(monkeypatch) -> None:
    """Test values are read from the environment."""
    monkeypatch.setenv("TIMEZONE", "Asia/Shanghai")
    monkeypatch.setenv("GENERATE_ON_STARTUP", "false")
    monkeypatch.setenv("ENVIRONMENT", "Production")

    settings = Settings(_env_file=None)

    assert settings.timezone == "Asia/Shanghai"
    assert settings.generate_on_startup is False
    assert settings.is_production is True


def test_collection_names_are_valid_identifiers() -> None:
    """Test every collection name passes the backend's name check."""
    names = [
        Constants.TASKS_COLLECTION,
        Constants.PERIODIC_TASKS_COLLECTION,
        Constants.TASK_INDEX_COLLECTION,
        Constants.PERIODIC_INDEX_COLLECTION,
    ]

    assert all(name.isidentifier() for name in names)
    assert len(set(names)) == len(names)
