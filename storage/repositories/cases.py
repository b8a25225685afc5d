"""
Cases Repository.

Responsibilities:
- Read eligible case records in their enumeration order.
- Load already-validated records.
- Delete a record, keeping a snapshot in deleted_cases.

Non-Responsibilities:
- No business logic.
- No scoring.
- No decision about when a case should be deleted.

Invariant:
Repositories must not encode domain decisions.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from casededup.database import CaseRecord, DeletedCase
from casededup.errors import DependencyError, NotFoundError, ValidationError
from casededup.normalize import coerce_datetime
from casededup.retry import RetryError, exponential_backoff
from casededup.schema import validate_case_record


class CaseStore:
    def __init__(self, session):
        self.session = session

    def list_eligible_cases(self) -> List[CaseRecord]:
        """Approved cases, newest first."""
        try:
            return (
                self.session.query(CaseRecord)
                .filter(CaseRecord.approved.is_(True))
                .order_by(CaseRecord.created_at.desc(), CaseRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise DependencyError(f"Case store unavailable: {e}") from e

    def get_case(self, case_id: str) -> Optional[CaseRecord]:
        return self.session.get(CaseRecord, case_id)

    def add_case(self, **fields: Any) -> CaseRecord:
        if "missing_date" in fields:
            fields["missing_date"] = coerce_datetime(fields["missing_date"])
        case = CaseRecord(**fields)
        self.session.add(case)
        self.session.commit()
        return case

    def import_cases(self, rows: Iterable[Dict[str, Any]]) -> int:
        """
        Insert case rows given in the host system's camelCase shape.

        Raises:
            ValidationError: if any row is invalid (nothing is inserted)
        """
        records = []
        for index, row in enumerate(rows):
            errors = validate_case_record(row)
            if errors:
                raise ValidationError(f"Row {index}: {'; '.join(errors)}", {"row": index, "errors": errors})
            record = CaseRecord(
                full_name=row["fullName"],
                alias=row.get("alias"),
                age=row.get("age"),
                missing_date=coerce_datetime(row.get("missingDate")),
                province=row.get("province"),
                municipality=row.get("municipality"),
                approved=bool(row.get("approved", False)),
            )
            if row.get("id"):
                record.id = row["id"]
            if row.get("createdAt"):
                record.created_at = coerce_datetime(row["createdAt"])
            records.append(record)

        self.session.add_all(records)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyError(f"Failed to import cases: {e}") from e
        return len(records)

    def delete_case(self, case_id: str, actor_id: Optional[str] = None, reason: Optional[str] = None) -> dict:
        """
        Remove a case and keep a snapshot of it.

        Returns:
            The snapshot of the deleted case

        Raises:
            NotFoundError: no such case
            DependencyError: store unavailable after retries
        """
        try:
            return self._delete_with_retry(case_id, actor_id, reason)
        except RetryError as e:
            raise DependencyError(f"Could not delete case {case_id}: {e}") from e
        except SQLAlchemyError as e:
            raise DependencyError(f"Could not delete case {case_id}: {e}") from e

    @exponential_backoff(max_retries=2, base_delay=0.05, max_delay=0.5, exceptions=(OperationalError,))
    def _delete_with_retry(self, case_id: str, actor_id: Optional[str], reason: Optional[str]) -> dict:
        case = self.session.get(CaseRecord, case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found", {"case_id": case_id})

        snapshot = case.snapshot()
        self.session.add(
            DeletedCase(
                case_id=case_id,
                case_data=snapshot,
                deleted_by=actor_id,
                deletion_reason=reason,
            )
        )
        self.session.delete(case)
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return snapshot
