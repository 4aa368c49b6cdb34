"""Engine initialization from the environment."""

import pytest

from commission_kernel.db.engine import (
    DATABASE_URL_ENV,
    get_engine,
    init_engine_from_env,
    is_postgres,
    reset_engine,
)


@pytest.fixture
def isolated_engine():
    """Leaves no module-level engine behind."""
    reset_engine()
    yield
    reset_engine()


@pytest.mark.usefixtures("isolated_engine")
class TestInitFromEnv:
    def test_missing_url_raises(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            init_engine_from_env()

    def test_env_wins_over_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv(DATABASE_URL_ENV, f"sqlite:///{tmp_path / 'from_env.db'}")
        engine = init_engine_from_env(f"sqlite:///{tmp_path / 'default.db'}")

        assert engine.url.database.endswith("from_env.db")
        assert get_engine() is engine
        assert not is_postgres()

    def test_default_used_when_unset(self, monkeypatch, tmp_path):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        engine = init_engine_from_env(f"sqlite:///{tmp_path / 'default.db'}")
        assert engine.url.database.endswith("default.db")

    def test_get_engine_before_init(self):
        with pytest.raises(RuntimeError):
            get_engine()
