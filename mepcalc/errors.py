"""
Error Taxonomy

Exceptions raised by the calculation engine and the record manager.

- ValidationError: client-correctable input problems (missing field,
  unknown calculation type, non-numeric value). Raised before any
  computation is attempted.
- ComputationError: a calculator invariant was violated by well-formed
  input. Nothing is persisted when one is raised.
- RecordNotFound / VersionConflict: record manager failures.
- ConfigError: broken rules directory or settings file.

Engineering warnings are NOT exceptions; calculators embed them in their
results as `compliant: false` / `warning` fields.
"""

from typing import Iterable, List, Optional


class MepCalcError(Exception):
    """Base class for all engine errors."""


class ConfigError(MepCalcError):
    """Invalid configuration or reference table data."""


# =============================================================================
# VALIDATION ERRORS - client correctable
# =============================================================================

class ValidationError(MepCalcError):
    """Input failed validation; computation was never attempted."""

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields: List[str] = list(fields or [])


class MissingFieldError(ValidationError):
    """One or more required fields are absent."""

    def __init__(self, fields: Iterable[str]):
        fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(fields)}", fields)


class InvalidValueError(ValidationError):
    """A field has the wrong type or an unsupported value."""

    def __init__(self, field: str, value, expected: str):
        super().__init__(f"Invalid value for '{field}': {value!r} (expected {expected})", [field])
        self.value = value


class UnknownCalculationType(ValidationError):
    """Calculation type is not registered."""

    def __init__(self, calculation_type: str, valid_types: Iterable[str]):
        valid_types = list(valid_types)
        super().__init__(
            f"Unknown calculation type: {calculation_type}. "
            f"Valid types: {', '.join(valid_types)}",
            ["calculation_type"],
        )
        self.calculation_type = calculation_type
        self.valid_types = valid_types


# =============================================================================
# COMPUTATION ERRORS
# =============================================================================

class ComputationError(MepCalcError):
    """Calculator could not produce a result for well-formed input."""

    def __init__(self, message: str, calculation_type: Optional[str] = None):
        super().__init__(message)
        self.calculation_type = calculation_type


class NetworkCycleError(ComputationError):
    """A parent-linked segment network contains a cycle."""

    def __init__(self, segment_ids: Iterable[str]):
        ids = [str(s) for s in segment_ids]
        super().__init__(f"Cycle detected in segment network: {' -> '.join(ids)}")
        self.segment_ids = ids


# =============================================================================
# RECORD ERRORS
# =============================================================================

class RecordNotFound(MepCalcError):
    """No calculation record with the given id."""

    def __init__(self, record_id: int):
        super().__init__(f"Calculation not found: {record_id}")
        self.record_id = record_id


class VersionConflict(MepCalcError):
    """Update was based on a stale version of the record."""

    def __init__(self, record_id: int, expected: int, actual: int):
        super().__init__(
            f"Calculation {record_id} is at version {actual}, update expected version {expected}"
        )
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
