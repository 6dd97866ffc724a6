import pytest

from outbreakmap.config.settings import Settings, get_settings
from outbreakmap.core.cache import FileCache
from outbreakmap.dashboard.build import clear_dashboard_memo


@pytest.fixture
def cache(tmp_path) -> FileCache:
    return FileCache(tmp_path / "cache", enabled=True, default_ttl_seconds=60)


@pytest.fixture(autouse=True)
def _fresh_dashboard_memo():
    clear_dashboard_memo()
    yield
    clear_dashboard_memo()


@pytest.fixture
def settings() -> Settings:
    return get_settings()
