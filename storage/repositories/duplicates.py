"""
Duplicate Pairs Repository.

Responsibilities:
- Store, list and fetch duplicate pairs with their case summaries.
- Enforce uniqueness of the ordered (first, second) case ids.
- Apply status transitions as a single guarded write.

Non-Responsibilities:
- No scoring.
- No decision about which transitions are meaningful.

Invariant:
The storage layer, not an in-memory check, is what rejects a second row
for the same ordered pair.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from casededup.database import CaseRecord, DuplicatePair, DuplicateStatus
from casededup.errors import (
    ConflictError,
    DependencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


class DuplicateRegistry:
    def __init__(self, session):
        self.session = session

    def list_pairs(self, status: Optional[Union[str, DuplicateStatus]] = None) -> List[DuplicatePair]:
        """All pairs, optionally filtered by status, highest score first."""
        query = self.session.query(DuplicatePair)
        if status is not None:
            try:
                status = DuplicateStatus(status)
            except ValueError as e:
                raise ValidationError(f"Unknown status: {status}") from e
            query = query.filter(DuplicatePair.status == status)
        return query.order_by(DuplicatePair.similarity_score.desc(), DuplicatePair.detected_at).all()

    def exists(self, first_case_id: str, second_case_id: str) -> bool:
        try:
            found = (
                self.session.query(DuplicatePair.id)
                .filter_by(first_case_id=first_case_id, second_case_id=second_case_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise DependencyError(f"Duplicate registry unavailable: {e}") from e
        return found is not None

    def get(self, pair_id: str) -> DuplicatePair:
        pair = self.session.get(DuplicatePair, pair_id)
        if pair is None:
            raise NotFoundError(f"Duplicate pair {pair_id} not found", {"pair_id": pair_id})
        return pair

    def create(
        self,
        first_case_id: str,
        second_case_id: str,
        similarity_score: float,
        detected_by: Optional[str] = None,
    ) -> DuplicatePair:
        """
        Insert a PENDING pair and commit it.

        Raises:
            ValidationError: score outside [0, 1] or identical case ids
            ConflictError: the ordered pair is already registered
            DependencyError: any other storage failure
        """
        try:
            pair = DuplicatePair(
                first_case_id=first_case_id,
                second_case_id=second_case_id,
                similarity_score=similarity_score,
                status=DuplicateStatus.PENDING,
                detected_by=detected_by,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        self.session.add(pair)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(
                f"Pair ({first_case_id}, {second_case_id}) is already registered",
                {"first_case_id": first_case_id, "second_case_id": second_case_id},
            ) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyError(f"Failed to register pair: {e}") from e
        return pair

    def transition(
        self,
        pair_id: str,
        new_status: DuplicateStatus,
        resolver_id: Optional[str],
        notes: Optional[str] = None,
    ) -> DuplicatePair:
        """
        Move a PENDING pair to new_status.

        The status guard is part of the UPDATE itself, so two concurrent
        callers cannot both succeed on the same pair.

        Raises:
            NotFoundError: no such pair
            InvalidTransitionError: the pair is not PENDING any more
        """
        try:
            updated = (
                self.session.query(DuplicatePair)
                .filter(
                    DuplicatePair.id == pair_id,
                    DuplicatePair.status == DuplicateStatus.PENDING,
                )
                .update(
                    {
                        DuplicatePair.status: new_status,
                        DuplicatePair.resolved_by: resolver_id,
                        DuplicatePair.resolved_at: datetime.now(),
                        DuplicatePair.resolution_notes: notes,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                self.session.rollback()
                current = self.get(pair_id)
                raise InvalidTransitionError(
                    f"Pair {pair_id} is {current.status.value}; only PENDING pairs can be resolved",
                    {"pair_id": pair_id, "status": current.status.value},
                )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DependencyError(f"Failed to update pair {pair_id}: {e}") from e

        pair = self.get(pair_id)
        self.session.refresh(pair)
        return pair

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in DuplicateStatus}
        rows = (
            self.session.query(DuplicatePair.status, func.count(DuplicatePair.id))
            .group_by(DuplicatePair.status)
            .all()
        )
        for status, count in rows:
            counts[DuplicateStatus(status).value] = count
        return counts

    def describe(self, pairs: List[DuplicatePair]) -> List[dict]:
        """Pairs as dicts with firstCase/secondCase summaries embedded."""
        ids = set()
        for pair in pairs:
            ids.add(pair.first_case_id)
            ids.add(pair.second_case_id)
        summaries = {}
        if ids:
            rows = self.session.query(CaseRecord).filter(CaseRecord.id.in_(ids)).all()
            summaries = {row.id: row.summary() for row in rows}

        described = []
        for pair in pairs:
            data = pair.to_dict()
            data["firstCase"] = summaries.get(pair.first_case_id)
            data["secondCase"] = summaries.get(pair.second_case_id)
            described.append(data)
        return described
