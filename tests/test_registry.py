"""
Tests for the duplicate registry repository.
"""

import pytest
from datetime import datetime

from casededup.database import DuplicateStatus
from casededup.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def registry(services):
    return services.registry


class TestCreateAndExists:
    """Test insertion and ordered-pair lookups."""

    def test_create_pending_pair(self, registry):
        """create stores a PENDING pair with detection fields."""
        pair = registry.create("a", "b", 0.85, detected_by="mod-1")

        assert pair.status == DuplicateStatus.PENDING
        assert pair.similarity_score == 0.85
        assert pair.detected_by == "mod-1"

    def test_exists_is_ordered(self, registry):
        """exists checks the ordered pair only."""
        registry.create("a", "b", 0.85)

        assert registry.exists("a", "b")
        assert not registry.exists("b", "a")

    def test_duplicate_ordered_pair_conflicts(self, registry):
        """A second insert of the same ordered pair is a ConflictError."""
        registry.create("a", "b", 0.85)

        with pytest.raises(ConflictError):
            registry.create("a", "b", 0.95)

        # Session is usable after the rejected insert
        assert len(registry.list_pairs()) == 1

    def test_invalid_score_rejected(self, registry):
        """Out-of-range scores are a ValidationError."""
        with pytest.raises(ValidationError):
            registry.create("a", "b", 1.5)

    def test_same_case_twice_rejected(self, registry):
        """Identical case ids are a ValidationError."""
        with pytest.raises(ValidationError):
            registry.create("a", "a", 0.9)


class TestListAndGet:
    """Test listing and fetching."""

    def test_sorted_by_score_descending(self, registry):
        """Pairs are listed highest score first."""
        registry.create("a", "b", 0.71)
        registry.create("c", "d", 0.99)
        registry.create("e", "f", 0.85)

        assert [p.similarity_score for p in registry.list_pairs()] == [0.99, 0.85, 0.71]

    def test_filter_by_status(self, registry):
        """list_pairs filters by status."""
        keep = registry.create("a", "b", 0.8)
        other = registry.create("c", "d", 0.9)
        registry.transition(other.id, DuplicateStatus.REJECTED, "mod-1")

        assert [p.id for p in registry.list_pairs("PENDING")] == [keep.id]
        assert [p.id for p in registry.list_pairs(DuplicateStatus.REJECTED)] == [other.id]
        assert registry.list_pairs("CONFIRMED") == []

    def test_unknown_status_filter(self, registry):
        """An unknown status filter is a ValidationError."""
        with pytest.raises(ValidationError):
            registry.list_pairs("MAYBE")

    def test_get_unknown(self, registry):
        """get raises NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError):
            registry.get("nope")

    def test_describe_embeds_case_summaries(self, registry, make_case):
        """describe embeds summaries and null for deleted cases."""
        first = make_case(full_name="Maria Silva", province="Luanda", age=30)
        pair = registry.create(first.id, "gone", 0.9)

        described = registry.describe([pair])[0]
        assert described["firstCase"]["fullName"] == "Maria Silva"
        assert described["firstCase"]["province"] == "Luanda"
        assert described["secondCase"] is None

    def test_count_by_status(self, registry):
        """count_by_status reports every status."""
        registry.create("a", "b", 0.8)
        registry.create("c", "d", 0.8)
        done = registry.create("e", "f", 0.8)
        registry.transition(done.id, DuplicateStatus.RESOLVED, "mod-1")

        assert registry.count_by_status() == {
            "PENDING": 2,
            "CONFIRMED": 0,
            "REJECTED": 0,
            "RESOLVED": 1,
        }


class TestTransition:
    """Test the guarded status update."""

    def test_sets_resolution_fields(self, registry):
        """transition stores status, resolver, notes and time."""
        pair = registry.create("a", "b", 0.9)
        before = datetime.now()

        updated = registry.transition(pair.id, DuplicateStatus.CONFIRMED, "mod-2", "same person")

        assert updated.status == DuplicateStatus.CONFIRMED
        assert updated.resolved_by == "mod-2"
        assert updated.resolution_notes == "same person"
        assert updated.resolved_at >= before
        assert updated.similarity_score == 0.9

    def test_only_pending_pairs_move(self, registry):
        """Non-pending pairs raise InvalidTransitionError."""
        pair = registry.create("a", "b", 0.9)
        registry.transition(pair.id, DuplicateStatus.CONFIRMED, "mod-2")

        with pytest.raises(InvalidTransitionError):
            registry.transition(pair.id, DuplicateStatus.REJECTED, "mod-3")

        assert registry.get(pair.id).status == DuplicateStatus.CONFIRMED
        assert registry.get(pair.id).resolved_by == "mod-2"

    def test_unknown_pair(self, registry):
        """Unknown pairs raise NotFoundError."""
        with pytest.raises(NotFoundError):
            registry.transition("nope", DuplicateStatus.CONFIRMED, "mod-2")

    def test_guard_holds_across_sessions(self, registry, db_path):
        """A second session resolving the same pair loses the race cleanly."""
        from casededup.database import get_session
        from storage.repositories.duplicates import DuplicateRegistry

        pair = registry.create("a", "b", 0.9)
        other_session = get_session(db_path)
        try:
            other = DuplicateRegistry(other_session)
            stale = other.get(pair.id)
            assert stale.status == DuplicateStatus.PENDING

            registry.transition(pair.id, DuplicateStatus.REJECTED, "mod-1")
            with pytest.raises(InvalidTransitionError):
                other.transition(pair.id, DuplicateStatus.CONFIRMED, "mod-2")
        finally:
            other_session.close()
