"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict

from casededup.database import CaseRecord, init_database, get_session
from casededup.env import Settings
from casededup.logger import get_logger, reset_logger
from casededup.services import build_services


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep the global logger off the console and out of ./logs."""
    reset_logger()
    get_logger(enable_file=False, enable_console=False)
    yield
    reset_logger()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Create a temporary database with all tables."""
    path = tmp_path / "cases.db"
    init_database(path)
    return path


@pytest.fixture
def session(db_path):
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def settings(db_path, tmp_path) -> Settings:
    return Settings(db_path=db_path, log_dir=tmp_path / "logs")


@pytest.fixture
def services(session, settings):
    return build_services(session, settings)


@pytest.fixture
def make_case(session) -> Callable[..., CaseRecord]:
    """
    Factory for approved case records.

    Each call is one minute newer than the previous, so the newest-first
    listing returns cases in reverse creation order.
    """
    base = datetime(2024, 2, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make(**fields: Any) -> CaseRecord:
        counter["n"] += 1
        fields.setdefault("approved", True)
        fields.setdefault("created_at", base + timedelta(minutes=counter["n"]))
        case = CaseRecord(**fields)
        session.add(case)
        session.commit()
        return case

    return _make


@pytest.fixture
def maria_fields() -> Dict[str, Any]:
    """Reference record used by the scoring scenarios."""
    return {
        "full_name": "Maria Silva",
        "missing_date": datetime(2024, 1, 1),
        "province": "Luanda",
        "age": 30,
    }


@pytest.fixture
def maria_variant_fields() -> Dict[str, Any]:
    """Same person, reported nine days later and one year older."""
    return {
        "full_name": "Maria Silva",
        "missing_date": datetime(2024, 1, 10),
        "province": "Luanda",
        "age": 31,
    }


@pytest.fixture
def sample_case_rows():
    """Case rows in the host system's JSON shape."""
    return [
        {
            "id": "case-a",
            "fullName": "Maria Silva",
            "age": 30,
            "missingDate": "2024-01-01T00:00:00",
            "province": "Luanda",
            "approved": True,
            "createdAt": "2024-02-01T10:00:00",
        },
        {
            "id": "case-b",
            "fullName": "Maria Silva",
            "age": 31,
            "missingDate": "2024-01-10T00:00:00",
            "province": "Luanda",
            "approved": True,
            "createdAt": "2024-02-02T10:00:00",
        },
        {
            "id": "case-c",
            "fullName": "Joao Pedro",
            "age": 52,
            "missingDate": "2023-06-15T00:00:00",
            "province": "Benguela",
            "approved": True,
            "createdAt": "2024-02-03T10:00:00",
        },
        {
            "id": "case-d",
            "fullName": "Maria Silva",
            "age": 30,
            "missingDate": "2024-01-01T00:00:00",
            "province": "Luanda",
            "approved": False,
            "createdAt": "2024-02-04T10:00:00",
        },
    ]
