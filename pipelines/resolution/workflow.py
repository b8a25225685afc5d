"""
Duplicate Resolution Workflow.

Responsibilities:
- Move a PENDING pair to CONFIRMED, REJECTED or RESOLVED.
- On a confirmed pair with deletion requested, delete the second case
  and leave an audit entry.

Non-Responsibilities:
- No scoring.
- No authorization; callers are already known to be moderators/admins.

Invariant:
Only PENDING pairs move, and they never move back. The deletion is a
follow-up to an already committed transition: if it fails, the new
status stands and the failure is reported alongside it.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Union

from casededup.database import DuplicatePair, DuplicateStatus
from casededup.errors import DependencyError, NotFoundError, ValidationError
from casededup.logger import StructuredLogger, get_logger

TRANSITIONS: Dict[DuplicateStatus, FrozenSet[DuplicateStatus]] = {
    DuplicateStatus.PENDING: frozenset(
        {DuplicateStatus.CONFIRMED, DuplicateStatus.REJECTED, DuplicateStatus.RESOLVED}
    ),
    DuplicateStatus.CONFIRMED: frozenset(),
    DuplicateStatus.REJECTED: frozenset(),
    DuplicateStatus.RESOLVED: frozenset(),
}


def can_transition(current: DuplicateStatus, new: DuplicateStatus) -> bool:
    return new in TRANSITIONS[current]


def parse_target_status(value: Union[str, DuplicateStatus]) -> DuplicateStatus:
    """Resolve a requested status, which must be one of the terminal ones."""
    try:
        status = DuplicateStatus(value)
    except ValueError as e:
        raise ValidationError(f"Unknown status: {value}", {"status": str(value)}) from e
    if not can_transition(DuplicateStatus.PENDING, status):
        raise ValidationError(
            f"Cannot resolve a pair to {status.value}",
            {"status": status.value},
        )
    return status


@dataclass
class ResolutionResult:
    pair: DuplicatePair
    deleted_case: bool = False
    deletion_error: Optional[str] = None

    @property
    def message(self) -> str:
        if self.deleted_case:
            return "Duplicate confirmed and second case removed"
        if self.deletion_error:
            return f"Status updated; case deletion failed: {self.deletion_error}"
        return "Status updated"


class ResolutionWorkflow:
    def __init__(
        self,
        registry,
        case_store,
        audit_log,
        logger: Optional[StructuredLogger] = None,
    ):
        self.registry = registry
        self.case_store = case_store
        self.audit_log = audit_log
        self.logger = logger or get_logger()

    def resolve(
        self,
        pair_id: str,
        new_status: Union[str, DuplicateStatus],
        resolver_id: Optional[str],
        notes: Optional[str] = None,
        delete_second_record: bool = False,
    ) -> ResolutionResult:
        """
        Apply a moderator decision to one pair.

        Raises:
            ValidationError: new_status is not CONFIRMED/REJECTED/RESOLVED
            NotFoundError: no pair with pair_id
            InvalidTransitionError: the pair is not PENDING
            DependencyError: the transition itself could not be stored
        """
        status = parse_target_status(new_status)

        pair = self.registry.transition(pair_id, status, resolver_id, notes)
        self.logger.record_resolution(status.value)
        self.logger.info(
            "Duplicate pair resolved",
            pair_id=pair_id,
            status=status.value,
            resolver_id=resolver_id,
        )
        self.audit_log.record(
            actor_id=resolver_id,
            action="RESOLVE_DUPLICATE",
            entity_type="CASE",
            entity_id=pair_id,
            metadata={"status": status.value, "deleteSecondRecord": bool(delete_second_record)},
        )

        result = ResolutionResult(pair=pair)
        if status is DuplicateStatus.CONFIRMED and delete_second_record:
            self._delete_second_case(pair, resolver_id, result)
        return result

    def _delete_second_case(self, pair: DuplicatePair, resolver_id: Optional[str], result: ResolutionResult) -> None:
        case_id = pair.second_case_id
        try:
            snapshot = self.case_store.delete_case(
                case_id,
                actor_id=resolver_id,
                reason=f"Confirmed duplicate of {pair.first_case_id} (pair {pair.id})",
            )
        except (NotFoundError, DependencyError) as e:
            result.deletion_error = e.message
            self.logger.record_error(type(e).__name__)
            self.logger.error(
                "Duplicate confirmed but case deletion failed",
                pair_id=pair.id,
                case_id=case_id,
                error=e.message,
            )
            return

        result.deleted_case = True
        self.logger.record_case_deleted()
        self.audit_log.record(
            actor_id=resolver_id,
            action="DELETE_DUPLICATE_CASE",
            entity_type="CASE",
            entity_id=case_id,
            metadata={
                "first_case_id": pair.first_case_id,
                "second_case_id": pair.second_case_id,
                "similarity_score": pair.similarity_score,
            },
            details=f"Duplicate case deleted: {snapshot.get('fullName')}",
        )
