# clinic_db/tests/conftest.py
import pytest
import pytest_asyncio
from ..manager import Manager, DatabaseConfig


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "clinic.db")


@pytest.fixture
def migrations_dir(tmp_path):
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def make_config(tmp_path, db_path):
    """Config factory pointing at a throwaway database with no real back-off delays."""
    def factory(**overrides):
        settings = dict(
            db_file=db_path,
            fallback_path=None,
            default_path=str(tmp_path / "data" / "database.sqlite"),
            migrations_dir=str(tmp_path / "migrations"),
            retry_base_delay=0.0,
            connect_retry_delay=0.0,
        )
        settings.update(overrides)
        return DatabaseConfig(**settings)
    return factory


@pytest_asyncio.fixture
async def manager(make_config):
    m = Manager(make_config())
    yield m
    await m.close()
