"""
Unit Tests for Validators and the Domain Exception Hierarchy
============================================================
"""

import pytest

from goopdex.modules.shared.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    GoopdexDomainException,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    WriterLockTimeoutError,
    get_error_severity,
    is_transient_error,
)
from goopdex.modules.shared.validators import (
    require_found,
    validate_coordinates,
    validate_nickname,
    validate_non_negative,
    validate_player_name,
    validate_positive_id,
)


# ============================================================================
# VALIDATORS
# ============================================================================


@pytest.mark.unit
class TestValidatePositiveId:
    def test_accepts_positive_int(self):
        validate_positive_id(7, "owned_id")

    @pytest.mark.parametrize("value", [0, -3, True, "1", 1.0, None])
    def test_rejects_non_positive_or_non_int(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_positive_id(value, "owned_id")
        assert exc_info.value.field == "owned_id"


@pytest.mark.unit
class TestValidateCoordinates:
    def test_both_missing_is_fine(self):
        validate_coordinates(None, None)

    def test_valid_pair(self):
        validate_coordinates(48.85, 2.35)
        validate_coordinates(-90, 180)

    def test_only_one_given(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_coordinates(10.0, None)
        assert exc_info.value.field == "location"

    def test_latitude_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_coordinates(91.0, 0.0)
        assert exc_info.value.field == "latitude"

    def test_longitude_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_coordinates(0.0, -180.5)
        assert exc_info.value.field == "longitude"


@pytest.mark.unit
class TestNamesAndAmounts:
    def test_nickname_is_stripped(self):
        assert validate_nickname("  Blobby ", 24) == "Blobby"

    def test_blank_nickname_clears(self):
        assert validate_nickname("   ", 24) is None
        assert validate_nickname(None, 24) is None

    def test_nickname_too_long(self):
        with pytest.raises(ValidationError):
            validate_nickname("x" * 25, 24)

    def test_player_name_required(self):
        with pytest.raises(ValidationError):
            validate_player_name("  ", 24)
        assert validate_player_name(" Ash ", 24) == "Ash"

    def test_non_negative(self):
        validate_non_negative(0, "amount")
        with pytest.raises(ValidationError):
            validate_non_negative(-1, "amount")

    def test_require_found(self):
        assert require_found("row", "Species", 1) == "row"
        with pytest.raises(NotFoundError):
            require_found(None, "Species", 1)


# ============================================================================
# EXCEPTIONS
# ============================================================================


@pytest.mark.unit
class TestDomainExceptions:
    def test_not_found_carries_resource_and_code(self):
        exc = NotFoundError("Species", 99)

        assert exc.resource_type == "Species"
        assert exc.identifier == 99
        assert exc.error_code == "SPECIES_NOT_FOUND"
        assert exc.severity is ErrorSeverity.INFO
        assert "Species not found: 99" in str(exc)

    def test_invariant_violation_is_critical(self):
        exc = InvariantViolationError("batch_size", "batch 3 holds 2 challenges", batch_id=3)

        assert exc.severity is ErrorSeverity.CRITICAL
        assert exc.details["batch_id"] == 3
        assert exc.error_code == "INVARIANT_BATCH_SIZE"

    def test_writer_lock_timeout_is_retryable(self):
        exc = WriterLockTimeoutError("goopdex:writer:1", 2.0)

        assert exc.is_retryable is True
        assert is_transient_error(exc) is True
        assert exc.details["retry_after"] == 2.0

    def test_non_domain_errors_are_not_transient(self):
        assert is_transient_error(RuntimeError("boom")) is False
        assert get_error_severity(RuntimeError("boom")) is ErrorSeverity.ERROR

    def test_to_dict(self):
        exc = ValidationError("nickname", "too long")
        payload = exc.to_dict()

        assert payload["error_type"] == "ValidationError"
        assert payload["error_code"] == "VALIDATION_NICKNAME"
        assert payload["details"]["field"] == "nickname"
        assert payload["is_retryable"] is False

    def test_all_share_the_base(self):
        for exc in (
            NotFoundError("Species"),
            ValidationError("x", "y"),
            InvariantViolationError("a", "b"),
            WriterLockTimeoutError("l", 1.0),
            ConfigurationError("k", "r"),
        ):
            assert isinstance(exc, GoopdexDomainException)
