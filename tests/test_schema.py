"""
Tests for request and record validation.
"""

import pytest

from casededup.errors import ValidationError
from casededup.schema import (
    require_valid,
    validate_case_record,
    validate_resolve_request,
    validate_status,
    validate_threshold,
)


class TestValidateThreshold:
    """Test threshold validation at the input surfaces."""

    @pytest.mark.parametrize("value", [None, 0, 0.0, 0.7, 1, 1.0])
    def test_valid(self, value):
        """None and values in [0, 1] are accepted."""
        assert validate_threshold(value) == []

    @pytest.mark.parametrize("value", [-0.1, 1.1, 5])
    def test_out_of_range(self, value):
        """Values outside [0, 1] are reported."""
        errors = validate_threshold(value)
        assert errors and "between 0 and 1" in errors[0]

    @pytest.mark.parametrize("value", ["0.7", True, float("nan"), [0.7]])
    def test_not_a_number(self, value):
        """Strings, booleans, NaN and lists are not numbers."""
        errors = validate_threshold(value)
        assert errors and "must be a number" in errors[0]


class TestValidateStatus:
    """Test status validation."""

    def test_known_statuses(self):
        """Every DuplicateStatus value is accepted."""
        for status in ("PENDING", "CONFIRMED", "REJECTED", "RESOLVED"):
            assert validate_status(status) == []

    def test_unknown_status(self):
        """Unknown statuses are reported."""
        assert validate_status("DONE")

    def test_lowercase_is_not_accepted(self):
        """Status matching is case-sensitive."""
        assert validate_status("pending")


class TestValidateResolveRequest:
    """Test the resolve payload."""

    def test_minimal(self):
        """Status alone is a valid payload."""
        assert validate_resolve_request({"status": "REJECTED"}) == []

    def test_full(self):
        """Notes and the delete flag are accepted."""
        data = {"status": "CONFIRMED", "resolutionNotes": "same person", "deleteSecondRecord": True}
        assert validate_resolve_request(data) == []

    def test_missing_status(self):
        """status is required."""
        errors = validate_resolve_request({})
        assert any("status" in e for e in errors)

    def test_pending_is_not_a_resolution(self):
        """PENDING is not a resolution target."""
        assert validate_resolve_request({"status": "PENDING"})

    def test_wrong_types(self):
        """Notes must be a string and the flag a boolean."""
        errors = validate_resolve_request(
            {"status": "CONFIRMED", "resolutionNotes": 5, "deleteSecondRecord": "yes"}
        )
        assert len(errors) == 2


class TestValidateCaseRecord:
    """Test case rows for import."""

    def test_valid(self, sample_case_rows):
        """The sample rows are valid."""
        for row in sample_case_rows:
            assert validate_case_record(row) == []

    def test_full_name_required(self):
        """fullName is required."""
        assert any("fullName" in e for e in validate_case_record({"age": 3}))

    def test_bad_fields(self):
        """Each bad field is reported once."""
        errors = validate_case_record(
            {"fullName": "Ana", "age": -1, "missingDate": "yesterday", "approved": "yes", "province": 3}
        )
        assert len(errors) == 4

    def test_empty_name_is_allowed(self):
        """An empty name is present, not missing."""
        assert validate_case_record({"fullName": ""}) == []


class TestRequireValid:
    """Test conversion of messages into ValidationError."""

    def test_no_errors(self):
        """An empty list does nothing."""
        require_valid([])

    def test_raises_with_messages(self):
        """Messages are joined and kept in details."""
        with pytest.raises(ValidationError) as exc_info:
            require_valid(["a", "b"])
        assert exc_info.value.details == {"errors": ["a", "b"]}
        assert exc_info.value.message == "a; b"
