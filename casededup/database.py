"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for case records, duplicate pairs, the audit
log and snapshots of deleted cases.
"""

import enum
import uuid
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from sqlalchemy import (
    create_engine,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, validates

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class DuplicateStatus(str, enum.Enum):
    """Resolution status of a duplicate pair."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    RESOLVED = "RESOLVED"


TERMINAL_STATUSES = (
    DuplicateStatus.CONFIRMED,
    DuplicateStatus.REJECTED,
    DuplicateStatus.RESOLVED,
)


class CaseRecord(Base):
    """Missing-person case. Owned by the case-management side."""

    __tablename__ = "cases"

    id = Column(String, primary_key=True, default=_new_id)
    full_name = Column(String, nullable=False)
    alias = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    missing_date = Column(DateTime, nullable=True)
    province = Column(String, nullable=True)
    municipality = Column(String, nullable=True)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def summary(self) -> dict:
        """Fields embedded next to a duplicate pair in listings."""
        return {
            "id": self.id,
            "fullName": self.full_name,
            "age": self.age,
            "missingDate": self.missing_date.isoformat() if self.missing_date else None,
            "province": self.province,
            "municipality": self.municipality,
        }

    def snapshot(self) -> dict:
        """Full JSON-safe copy, kept in deleted_cases."""
        data = self.summary()
        data.update(
            {
                "alias": self.alias,
                "approved": self.approved,
                "createdAt": self.created_at.isoformat() if self.created_at else None,
                "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            }
        )
        return data


class DuplicatePair(Base):
    """Candidate duplicate relationship between two cases."""

    __tablename__ = "duplicate_pairs"
    __table_args__ = (
        UniqueConstraint("first_case_id", "second_case_id", name="uq_duplicate_pairs_ordered"),
        Index("ix_duplicate_pairs_first_case_id", "first_case_id"),
        Index("ix_duplicate_pairs_second_case_id", "second_case_id"),
        Index("ix_duplicate_pairs_status", "status"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    # Plain references: deleting a case must not cascade into its pairs.
    first_case_id = Column(String, nullable=False)
    second_case_id = Column(String, nullable=False)
    similarity_score = Column(Float, nullable=False)
    status = Column(
        SQLEnum(DuplicateStatus, name="duplicate_status", native_enum=False),
        nullable=False,
        default=DuplicateStatus.PENDING,
    )
    detected_by = Column(String, nullable=True)
    detected_at = Column(DateTime, nullable=False, default=datetime.now)
    resolved_by = Column(String, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)

    @validates("similarity_score")
    def _validate_score(self, key, value):
        if self.similarity_score is not None:
            raise ValueError("similarity_score is immutable once set")
        if value is None or not 0.0 <= value <= 1.0:
            raise ValueError(f"similarity_score must be within [0, 1], got {value!r}")
        return value

    @validates("first_case_id", "second_case_id")
    def _validate_case_ids(self, key, value):
        other = self.second_case_id if key == "first_case_id" else self.first_case_id
        if other is not None and other == value:
            raise ValueError("A duplicate pair must reference two distinct cases")
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "firstCaseId": self.first_case_id,
            "secondCaseId": self.second_case_id,
            "similarityScore": self.similarity_score,
            "status": self.status.value if self.status else None,
            "detectedBy": self.detected_by,
            "detectedAt": self.detected_at.isoformat() if self.detected_at else None,
            "resolvedBy": self.resolved_by,
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
            "resolutionNotes": self.resolution_notes,
        }


class AuditEntry(Base):
    """Audit trail row."""

    __tablename__ = "audit_log"

    id = Column(String, primary_key=True, default=_new_id)
    actor_id = Column(String, nullable=True)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=True)
    entity_id = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    payload = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class DeletedCase(Base):
    """Snapshot of a case taken right before it is deleted."""

    __tablename__ = "deleted_cases"

    id = Column(String, primary_key=True, default=_new_id)
    case_id = Column(String, nullable=False, index=True)
    case_data = Column(JSON, nullable=False)
    deleted_by = Column(String, nullable=True)
    deletion_reason = Column(Text, nullable=True)
    deleted_at = Column(DateTime, nullable=False, default=datetime.now)


@lru_cache(maxsize=None)
def _engine_for(url: str):
    return create_engine(url, connect_args={"check_same_thread": False})


def get_engine(db_path: Path):
    """Return the shared engine for a SQLite file."""
    return _engine_for(f"sqlite:///{Path(db_path).resolve()}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(get_engine(db_path))


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
