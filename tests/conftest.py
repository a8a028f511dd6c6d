import pytest
from fastapi.testclient import TestClient

from segmentation_api.app.core.config import Settings
from segmentation_api.app.core.db import Database
from segmentation_api.app.engine import SegmentationEngine
from segmentation_api.app.main import create_app


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "segmentation_test.db"))


@pytest.fixture
def engine(db):
    return SegmentationEngine(db, create_tables=True)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        database_url=str(tmp_path / "segmentation_api_test.db"),
        create_tables=True,
        # Long enough that the sweeper only runs its initial sweep.
        tidy_interval_seconds=3600,
    )


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def count_rows(db):
    """Run a COUNT query directly against the test database."""

    def _count(query, params=()):
        conn = db.connect()
        try:
            return conn.execute(query, params).fetchone()[0]
        finally:
            conn.close()

    return _count


@pytest.fixture
def run_sql(db):
    """Execute a raw SQL script against the test database."""

    def _run(script):
        conn = db.connect()
        try:
            conn.executescript(script)
        finally:
            conn.close()

    return _run
