"""
Calculator Contract

Every calculator exposes calculate(params) -> results and
summarize(results) -> summary. calculate is a pure function of its input
and the injected reference tables: no hidden state, no clock reads.

Input documents use the camelCase keys the calculators were designed
around; the helpers below read them with defaults and raise
ValidationError for missing or non-numeric values.
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..engine.tables import LookupFailure, ReferenceTableStore, default_store
from ..errors import (
    ComputationError,
    InvalidValueError,
    MepCalcError,
    MissingFieldError,
)

logger = logging.getLogger(__name__)


class CalculationType(str, Enum):
    """Closed set of calculation types."""
    ELECTRICAL_LOAD = "electrical_load"
    HVAC_LOAD = "hvac_load"
    FIRE_PUMP = "fire_pump"
    CABLE_SELECTION = "cable_selection"
    LIGHTING_DESIGN = "lighting_design"
    EARTHING_LIGHTNING = "earthing_lightning"
    PHE_PUMP = "phe_pump"
    PLUMBING_FIXTURE = "plumbing_fixture"
    VENTILATION = "ventilation"
    DUCT_SIZING = "duct_sizing"
    PANEL_SCHEDULE = "panel_schedule"
    RISING_MAIN = "rising_main"
    FIRE_FIGHTING = "fire_fighting"


# =============================================================================
# INPUT HELPERS
# =============================================================================

def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def require(params: Dict[str, Any], fields: Iterable[str], prefix: str = "") -> None:
    """Raise MissingFieldError naming every absent field."""
    missing = [f"{prefix}{f}" for f in fields if _blank(params.get(f))]
    if missing:
        raise MissingFieldError(missing)


def number(params: Dict[str, Any], key: str, default: Optional[float] = None,
           prefix: str = "", minimum: Optional[float] = None) -> float:
    """
    Read a numeric field.

    Args:
        params: Input document
        key: Field name
        default: Used when the field is absent or blank; None makes it required
        prefix: Path prefix for error messages (e.g. "segments[2].")
        minimum: Lower bound (inclusive)

    Returns:
        float value
    """
    value = params.get(key)
    if _blank(value):
        if default is None:
            raise MissingFieldError([f"{prefix}{key}"])
        return float(default)
    if isinstance(value, bool):
        raise InvalidValueError(f"{prefix}{key}", value, "a number")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise InvalidValueError(f"{prefix}{key}", value, "a number") from None
    if math.isnan(result) or math.isinf(result):
        raise InvalidValueError(f"{prefix}{key}", value, "a finite number")
    if minimum is not None and result < minimum:
        raise InvalidValueError(f"{prefix}{key}", value, f"a number >= {minimum}")
    return result


def integer(params: Dict[str, Any], key: str, default: Optional[int] = None,
            prefix: str = "", minimum: Optional[int] = None) -> int:
    value = number(params, key, default, prefix=prefix, minimum=minimum)
    if value != int(value):
        raise InvalidValueError(f"{prefix}{key}", params.get(key), "a whole number")
    return int(value)


def text(params: Dict[str, Any], key: str, default: Optional[str] = None, prefix: str = "") -> str:
    value = params.get(key)
    if _blank(value):
        if default is None:
            raise MissingFieldError([f"{prefix}{key}"])
        return default
    return str(value)


def choice(params: Dict[str, Any], key: str, default: str, options: Sequence[str],
           prefix: str = "", upper: bool = False) -> str:
    """Read a field restricted to a fixed set of options."""
    value = text(params, key, default, prefix=prefix)
    if upper:
        value = value.upper()
    if value not in options:
        raise InvalidValueError(f"{prefix}{key}", value, f"one of {', '.join(options)}")
    return value


def phase_count(params: Dict[str, Any], key: str = "phases", default: int = 3, prefix: str = "") -> int:
    """Read a supply phase count (1 or 3)."""
    value = integer(params, key, default, prefix=prefix)
    if value not in (1, 3):
        raise InvalidValueError(f"{prefix}{key}", params.get(key), "1 or 3")
    return value


def power_factor(params: Dict[str, Any], key: str = "powerFactor", default: float = 0.85,
                 prefix: str = "") -> float:
    value = number(params, key, default, prefix=prefix)
    if not 0 < value <= 1:
        raise InvalidValueError(f"{prefix}{key}", params.get(key), "a power factor in (0, 1]")
    return value


def flag(params: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def items(params: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Read a list of objects (rooms, circuits, segments...)."""
    value = params.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise InvalidValueError(key, value, "a list of objects")
    return value


def rnd(value: float, digits: int = 2) -> float:
    """Round for reporting; keeps results stable and JSON friendly."""
    return round(float(value), digits)


def banded(bands: Sequence[Dict[str, Any]], value: float, key: str = "max_m") -> Dict[str, Any]:
    """First band whose upper bound (`key`) covers value; last band when none do."""
    for band in bands:
        if band[key] is None or value <= band[key]:
            return band
    return bands[-1]


# =============================================================================
# CALCULATOR BASE
# =============================================================================

class Calculator(ABC):
    """
    Base class for all calculators.

    Subclasses set `calculation_type`, optionally REQUIRED (top-level fields
    that have no default), and implement calculate() and summarize().
    """

    calculation_type: CalculationType
    REQUIRED: Tuple[str, ...] = ()

    def __init__(self, store: Optional[ReferenceTableStore] = None):
        self.store = store if store is not None else default_store()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.calculation_type.value})>"

    def validate(self, params: Dict[str, Any]) -> None:
        if not isinstance(params, dict):
            raise InvalidValueError("input_parameters", params, "an object")
        require(params, self.REQUIRED)

    @abstractmethod
    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Compute the full result document."""

    @abstractmethod
    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        """Project the headline fields of a result document."""

    def run(self, params: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Validate, calculate and summarize.

        Engine errors propagate unchanged; anything else raised inside the
        calculator becomes a ComputationError carrying its message.
        """
        self.validate(params)
        try:
            results = self.calculate(params)
            summary = self.summarize(results)
        except MepCalcError as e:
            if isinstance(e, ComputationError) and e.calculation_type is None:
                e.calculation_type = self.calculation_type.value
            raise
        except (ArithmeticError, ValueError, LookupFailure, KeyError, TypeError) as e:
            logger.warning(f"{self.calculation_type.value} calculation failed: {e}")
            raise ComputationError(str(e), self.calculation_type.value) from e
        return results, summary

    # -- reference table shortcuts -------------------------------------------

    def table(self, name: str):
        return self.store.table(name)

    def catalog(self, name: str) -> Tuple:
        return self.store.catalog(name)

    def lookup(self, name: str, key: Any, default: Any = None) -> Any:
        return self.store.lookup(name, key, default=default)

    def nearest(self, name: str, query: float) -> Any:
        return self.store.nearest_value(name, query)
