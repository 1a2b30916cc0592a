"""
Calculator Registry

Static mapping from CalculationType to calculator instance. Unknown type
strings are rejected here, at the boundary, with the list of valid types.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from ..engine.tables import ReferenceTableStore, default_store
from ..errors import UnknownCalculationType
from .base import CalculationType, Calculator

logger = logging.getLogger(__name__)


class CalculatorRegistry:
    """Closed registry of calculators keyed by CalculationType."""

    def __init__(self, calculators: Iterable[Calculator] = ()):
        self._calculators: Dict[CalculationType, Calculator] = {}
        for calc in calculators:
            self.register(calc)

    def register(self, calculator: Calculator) -> None:
        ctype = calculator.calculation_type
        if ctype in self._calculators:
            raise ValueError(f"Calculator already registered for {ctype.value}")
        self._calculators[ctype] = calculator

    def __contains__(self, calculation_type) -> bool:
        try:
            self.resolve_type(calculation_type)
        except UnknownCalculationType:
            return False
        return True

    def __len__(self) -> int:
        return len(self._calculators)

    @property
    def types(self) -> List[str]:
        """Registered type identifiers in declaration order."""
        return [t.value for t in CalculationType if t in self._calculators]

    def resolve_type(self, calculation_type) -> CalculationType:
        if isinstance(calculation_type, CalculationType) and calculation_type in self._calculators:
            return calculation_type
        try:
            ctype = CalculationType(str(calculation_type))
        except ValueError:
            raise UnknownCalculationType(str(calculation_type), self.types) from None
        if ctype not in self._calculators:
            raise UnknownCalculationType(ctype.value, self.types)
        return ctype

    def resolve(self, calculation_type) -> Calculator:
        """Calculator for a type identifier (string or enum)."""
        return self._calculators[self.resolve_type(calculation_type)]

    def run(self, calculation_type, params: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Resolve and run; returns (results, summary)."""
        calculator = self.resolve(calculation_type)
        logger.debug(f"Running {calculator.calculation_type.value}")
        return calculator.run(params)


def build_registry(calculator_classes: Iterable[Type[Calculator]],
                   store: Optional[ReferenceTableStore] = None) -> CalculatorRegistry:
    store = store if store is not None else default_store()
    return CalculatorRegistry(cls(store) for cls in calculator_classes)
