"""
Derating Factor Composer

Combines independent attenuation factors (ambient temperature, grouping,
installation method, soil) into one multiplicative factor.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..errors import ComputationError
from .tables import ReferenceTableStore

logger = logging.getLogger(__name__)

NEAREST = "nearest"
EXACT = "exact"


@dataclass(frozen=True)
class FactorSpec:
    """One derating cause: which table to consult and with what query."""
    name: str  # e.g. "ambient"
    table: str  # reference table name
    query: Any  # temperature, circuit count, installation method...
    mode: str = NEAREST  # nearest | exact
    applies: bool = True  # False -> contributes 1.0
    default: float = 1.0  # fallback for exact-mode misses


@dataclass
class FactorResult:
    """Resolved factor for one cause."""
    name: str
    factor: float
    query: Any
    key: Any = None  # table key actually used
    applied: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "factor": self.factor,
            "query": self.query,
            "key": self.key,
            "applied": self.applied,
        }


@dataclass
class DeratingFactorSet:
    """Transient set of factors plus their product."""
    factors: List[FactorResult] = field(default_factory=list)
    combined: float = 1.0

    def get(self, name: str) -> Optional[FactorResult]:
        for f in self.factors:
            if f.name == name:
                return f
        return None

    def factor(self, name: str) -> float:
        f = self.get(name)
        return f.factor if f else 1.0

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {f.name: f.to_dict() for f in self.factors}
        out["combined"] = round(self.combined, 3)
        return out


def _resolve(store: ReferenceTableStore, spec: FactorSpec) -> FactorResult:
    if not spec.applies:
        return FactorResult(spec.name, 1.0, spec.query, key=None, applied=False)

    if spec.mode == EXACT:
        value = store.lookup(spec.table, spec.query, default=None)
        if value is None:
            logger.debug(f"No '{spec.table}' entry for {spec.query!r}, using {spec.default}")
            return FactorResult(spec.name, float(spec.default), spec.query, key=None)
        return FactorResult(spec.name, float(value), spec.query, key=spec.query)

    if spec.mode == NEAREST:
        key, value = store.nearest(spec.table, float(spec.query))
        return FactorResult(spec.name, float(value), spec.query, key=key)

    raise ValueError(f"Unknown factor lookup mode: {spec.mode}")


def compose(store: ReferenceTableStore, specs: Sequence[FactorSpec]) -> DeratingFactorSet:
    """
    Resolve every factor and multiply the applicable ones.

    Non-applicable factors contribute 1.0 (never 0).

    Args:
        store: Reference tables
        specs: Factor specifications, in reporting order

    Returns:
        DeratingFactorSet
    """
    results = [_resolve(store, spec) for spec in specs]

    combined = 1.0
    for r in results:
        if r.factor <= 0:
            raise ComputationError(f"Derating factor '{r.name}' must be positive, got {r.factor}")
        combined *= r.factor

    return DeratingFactorSet(factors=results, combined=combined)
