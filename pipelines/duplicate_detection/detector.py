"""
Duplicate Detection Pass.

Responsibilities:
- Score every pair of eligible cases and keep those at or above threshold.
- Register new candidates as PENDING pairs, skipping pairs already known.
- Report counts for the run and leave an audit entry.

Non-Responsibilities:
- No feature computation.
- No resolution decisions.
- No scheduling; callers invoke a pass on demand.

Invariant:
Running the pass twice over an unchanged record set creates nothing the
second time. A failure to persist one candidate never aborts the pass.
"""

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from casededup.database import DuplicatePair
from casededup.env import DEFAULT_THRESHOLD
from casededup.errors import CaseDedupError, ConflictError, ValidationError
from casededup.logger import StructuredLogger, get_logger

from .candidate_selector import iter_case_pairs, order_pair, pair_count
from .models import Candidate, CaseProfile
from .scoring import DEFAULT_WEIGHTS, FactorWeights, score_pair


def find_candidates(
    profiles: Sequence[CaseProfile],
    threshold: float = DEFAULT_THRESHOLD,
    weights: FactorWeights = DEFAULT_WEIGHTS,
    canonical: bool = False,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Tuple[List[Candidate], int]:
    """
    Pure scoring stage of the pass.

    Args:
        profiles: Eligible cases in their fixed enumeration order
        threshold: Minimum score to keep a pair (inclusive)
        weights: Factor weights
        canonical: Put the smaller id first instead of iteration order
        should_stop: Polled between comparisons; True aborts the stage

    Returns:
        (candidates in iteration order, number of pairs compared)

    Raises:
        DetectionCancelled: if should_stop() returns True
    """
    candidates: List[Candidate] = []
    compared = 0

    for first, second in iter_case_pairs(profiles, should_stop):
        if first.id == second.id:
            continue
        compared += 1
        breakdown = score_pair(first, second, weights)
        if not breakdown.comparable:
            continue
        if breakdown.score >= threshold:
            first_id, second_id = order_pair(first.id, second.id, canonical)
            candidates.append(
                Candidate(
                    first_case_id=first_id,
                    second_case_id=second_id,
                    score=breakdown.score,
                    factors=breakdown.factors,
                    explanation=breakdown.explain(),
                )
            )

    return candidates, compared


@dataclass
class DetectionResult:
    created: List[DuplicatePair] = field(default_factory=list)
    compared: int = 0
    candidates: int = 0
    skipped_existing: int = 0
    failed: int = 0

    @property
    def count(self) -> int:
        return len(self.created)


class DetectionPass:
    """Runs duplicate detection over the case store into the registry."""

    def __init__(
        self,
        case_store,
        registry,
        audit_log,
        weights: FactorWeights = DEFAULT_WEIGHTS,
        canonical_pairs: bool = False,
        logger: Optional[StructuredLogger] = None,
    ):
        self.case_store = case_store
        self.registry = registry
        self.audit_log = audit_log
        self.weights = weights
        self.canonical_pairs = canonical_pairs
        self.logger = logger or get_logger()

    def run(
        self,
        actor_id: Optional[str] = None,
        threshold: float = DEFAULT_THRESHOLD,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DetectionResult:
        """
        Detect and register candidate duplicate pairs.

        Thresholds above 1 are accepted and simply match nothing; range
        checks for user input belong to the calling surface.

        Raises:
            ValidationError: threshold is not a number
            DetectionCancelled: timeout elapsed or cancel_event was set
                while scoring (nothing is persisted in that case)
        """
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or math.isnan(threshold):
            raise ValidationError("Field 'threshold' must be a number", {"threshold": repr(threshold)})

        should_stop = _stop_condition(timeout, cancel_event)
        profiles = [CaseProfile.from_record(r) for r in self.case_store.list_eligible_cases()]
        self.logger.info(
            "Starting duplicate detection",
            actor_id=actor_id,
            threshold=threshold,
            eligible_cases=len(profiles),
            pairs_to_compare=pair_count(len(profiles)),
        )

        candidates, compared = find_candidates(
            profiles,
            threshold=threshold,
            weights=self.weights,
            canonical=self.canonical_pairs,
            should_stop=should_stop,
        )

        result = DetectionResult(compared=compared, candidates=len(candidates))
        for candidate in candidates:
            try:
                if self._already_known(candidate):
                    result.skipped_existing += 1
                    continue
                pair = self.registry.create(
                    first_case_id=candidate.first_case_id,
                    second_case_id=candidate.second_case_id,
                    similarity_score=candidate.score,
                    detected_by=actor_id,
                )
            except ConflictError:
                # Registered concurrently between the check and the insert
                result.skipped_existing += 1
                continue
            except CaseDedupError as e:
                result.failed += 1
                self.logger.record_error(type(e).__name__)
                self.logger.warning(
                    "Dropping candidate that could not be persisted",
                    first_case_id=candidate.first_case_id,
                    second_case_id=candidate.second_case_id,
                    error=str(e),
                )
                continue
            result.created.append(pair)
            self.logger.debug(
                "Registered duplicate candidate",
                pair_id=pair.id,
                first_case_id=candidate.first_case_id,
                second_case_id=candidate.second_case_id,
                explanation=candidate.explanation,
            )

        self.logger.record_detection_run(
            compared=result.compared,
            candidates=result.candidates,
            created=result.count,
            skipped=result.skipped_existing,
            failed=result.failed,
        )
        self.logger.info(
            f"Detection complete: {result.count} new pairs",
            compared=result.compared,
            candidates=result.candidates,
            skipped_existing=result.skipped_existing,
            failed=result.failed,
        )
        self.audit_log.record(
            actor_id=actor_id,
            action="DETECT_DUPLICATES",
            entity_type="CASE",
            entity_id=None,
            metadata={
                "threshold": threshold,
                "compared": result.compared,
                "candidates": result.candidates,
                "created": result.count,
                "skipped_existing": result.skipped_existing,
                "failed": result.failed,
            },
            details=f"Detected {result.count} duplicate cases",
        )
        return result

    def _already_known(self, candidate: Candidate) -> bool:
        if self.registry.exists(*candidate.key):
            return True
        return self.canonical_pairs and self.registry.exists(*candidate.reversed_key())


def _stop_condition(
    timeout: Optional[float],
    cancel_event: Optional[threading.Event],
) -> Optional[Callable[[], bool]]:
    if timeout is None and cancel_event is None:
        return None
    deadline = time.monotonic() + timeout if timeout is not None else None

    def should_stop() -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    return should_stop
