"""
Wiring of repositories and pipelines around one database session.

Both the CLI and the HTTP surface build their collaborators here.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from pipelines.duplicate_detection.detector import DetectionPass
from pipelines.duplicate_detection.scoring import DEFAULT_WEIGHTS, FactorWeights
from pipelines.resolution.workflow import ResolutionWorkflow
from storage.repositories.audit import AuditLog
from storage.repositories.cases import CaseStore
from storage.repositories.duplicates import DuplicateRegistry

from .database import get_session
from .env import Settings
from .logger import StructuredLogger, get_logger


@dataclass
class Services:
    session: object
    case_store: CaseStore
    registry: DuplicateRegistry
    audit_log: AuditLog
    detection: DetectionPass
    workflow: ResolutionWorkflow


def build_services(
    session,
    settings: Settings,
    weights: FactorWeights = DEFAULT_WEIGHTS,
    logger: Optional[StructuredLogger] = None,
) -> Services:
    logger = logger or get_logger()
    case_store = CaseStore(session)
    registry = DuplicateRegistry(session)
    audit_log = AuditLog(session, logger=logger)
    return Services(
        session=session,
        case_store=case_store,
        registry=registry,
        audit_log=audit_log,
        detection=DetectionPass(
            case_store,
            registry,
            audit_log,
            weights=weights,
            canonical_pairs=settings.canonical_pairs,
            logger=logger,
        ),
        workflow=ResolutionWorkflow(registry, case_store, audit_log, logger=logger),
    )


@contextmanager
def open_services(settings: Settings) -> Iterator[Services]:
    """Session-scoped services; the session is closed on exit."""
    session = get_session(settings.db_path)
    try:
        yield build_services(session, settings)
    finally:
        session.close()
