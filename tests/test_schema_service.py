import pytest

from segmentation_api.app.core.db import Database
from segmentation_api.app.core.exceptions import SchemaError
from segmentation_api.app.engine import SegmentationEngine
from segmentation_api.app.services.schema_service import SchemaService

SEGMENTS_PROBLEM = "'segments' table is not ok: proper 'segments' table is { id INTEGER; slug TEXT }"
RELATIONS_PROBLEM = (
    "'user_segment_relations' table is not ok: proper 'user_segment_relations' table is "
    "{ user_id INTEGER; segment_id INTEGER; expires_at TIMESTAMP }"
)


def test_verify_reports_every_missing_table(db):
    with pytest.raises(SchemaError) as exc_info:
        SchemaService(db).verify()

    assert exc_info.value.problems == [SEGMENTS_PROBLEM, RELATIONS_PROBLEM]
    assert str(exc_info.value) == SEGMENTS_PROBLEM + "\n" + RELATIONS_PROBLEM


def test_ensure_creates_tables_and_is_idempotent(db):
    service = SchemaService(db)
    service.ensure(create_tables=True)
    service.ensure(create_tables=True)
    service.verify()


def test_verify_reports_only_the_wrong_table(db, run_sql):
    run_sql(
        """
        CREATE TABLE segments (id INTEGER PRIMARY KEY, name TEXT);
        CREATE TABLE user_segment_relations (
            user_id INTEGER, segment_id INTEGER, expires_at TIMESTAMP
        );
        """
    )

    with pytest.raises(SchemaError) as exc_info:
        SchemaService(db).verify()

    assert str(exc_info.value) == SEGMENTS_PROBLEM


def test_relations_without_expiration_column_are_rejected(db, run_sql):
    run_sql(
        """
        CREATE TABLE segments (id INTEGER PRIMARY KEY, slug TEXT);
        CREATE TABLE user_segment_relations (user_id INTEGER, segment_id INTEGER);
        """
    )

    with pytest.raises(SchemaError) as exc_info:
        SchemaService(db).verify()

    assert exc_info.value.problems == [RELATIONS_PROBLEM]


def test_extra_columns_are_tolerated(db, run_sql):
    run_sql(
        """
        CREATE TABLE segments (id INTEGER PRIMARY KEY, slug TEXT, description TEXT);
        CREATE TABLE user_segment_relations (
            user_id INTEGER, segment_id INTEGER, expires_at TIMESTAMP, note TEXT
        );
        """
    )

    SchemaService(db).verify()


def test_engine_refuses_incompatible_database(db):
    with pytest.raises(SchemaError):
        SegmentationEngine(db, create_tables=False)


def test_unreachable_database_is_a_schema_error(tmp_path):
    db = Database(str(tmp_path / "missing" / "dir" / "segmentation.db"))

    with pytest.raises(SchemaError):
        SchemaService(db).ensure(create_tables=True)
