import pytest
from sqlalchemy import create_engine, inspect

from app.db import bootstrap
from app.db.base import Base
from app.models.timetable_entry import CLASSROOM_BOOKING_INDEX, FACULTY_BOOKING_INDEX, TimetableEntry


def _raise_error(message: str):
    raise RuntimeError(message)


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_ensure_booking_indexes", lambda: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility()


def test_missing_booking_indexes_are_recreated(monkeypatch, tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'legacy.db'}")
    Base.metadata.create_all(bind=engine)
    with engine.begin() as connection:
        for index in TimetableEntry.__table__.indexes:
            if index.name in bootstrap.BOOKING_INDEXES:
                index.drop(bind=connection)
    monkeypatch.setattr(bootstrap, "engine", engine)

    bootstrap.ensure_runtime_schema_compatibility()

    names = {item["name"] for item in inspect(engine).get_indexes("timetable_entries")}
    assert {FACULTY_BOOKING_INDEX, CLASSROOM_BOOKING_INDEX} <= names
    engine.dispose()
