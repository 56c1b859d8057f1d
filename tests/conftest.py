import pytest

FARMOS_ENV = ("FARMOS_HOSTNAME", "FARMOS_USERNAME", "FARMOS_PASSWORD", "FARMOS_SCHEME", "FARMSYNC_DB")


@pytest.fixture(autouse=True)
def clean_farmos_env(monkeypatch):
    """Keep a developer's real farmOS settings (or .env) out of every test."""
    for name in FARMOS_ENV:
        monkeypatch.delenv(name, raising=False)
