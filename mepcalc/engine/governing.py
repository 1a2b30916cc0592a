"""
Multi-Criteria Governing Selector

Resolves several independent sizing criteria (current capacity, voltage
drop, short-circuit withstand, ...) to standard sizes, takes the largest,
and reports which criterion governed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .selector import Selection, select


@dataclass(frozen=True)
class Criterion:
    """
    One sizing criterion.

    Give either `required` (resolved against the catalog here) or
    `resolved` (a Selection the caller already made, e.g. from a
    capacity table).
    """
    name: str
    required: Optional[float] = None
    resolved: Optional[Selection] = None


@dataclass
class GoverningResult:
    selected_size: Any
    governing_criterion: str
    resolved: Dict[str, Selection] = field(default_factory=dict)

    @property
    def exceeded_catalog(self) -> bool:
        return any(s.exceeded_catalog for s in self.resolved.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedSize": self.selected_size,
            "governingCriterion": self.governing_criterion,
            "resolvedSizes": {name: s.selected for name, s in self.resolved.items()},
            "exceededCatalog": self.exceeded_catalog,
        }


CriteriaInput = Union[
    Mapping[str, float],
    Sequence[Union[Criterion, Tuple[str, float]]],
]


def _normalize(criteria: CriteriaInput) -> Sequence[Criterion]:
    if isinstance(criteria, Mapping):
        return [Criterion(name, required=req) for name, req in criteria.items()]
    out = []
    for c in criteria:
        if isinstance(c, Criterion):
            out.append(c)
        else:
            name, req = c
            out.append(Criterion(name, required=req))
    return out


def select_governing(criteria: CriteriaInput, catalog: Sequence) -> GoverningResult:
    """
    Select the most restrictive standard size.

    Args:
        criteria: Criteria in priority order (mapping order is priority order)
        catalog: Ascending standard sizes

    Returns:
        GoverningResult; the governor is the first criterion whose
        independently resolved size equals the final size
    """
    items = _normalize(criteria)
    if not items:
        raise ValueError("At least one sizing criterion is required")

    resolved: Dict[str, Selection] = {}
    for c in items:
        if c.resolved is not None:
            resolved[c.name] = c.resolved
        elif c.required is not None:
            resolved[c.name] = select(catalog, c.required)
        else:
            raise ValueError(f"Criterion '{c.name}' has neither a requirement nor a resolved size")

    final = max(s.selected for s in resolved.values())
    governor = next(name for name, s in resolved.items() if s.selected == final)

    return GoverningResult(selected_size=final, governing_criterion=governor, resolved=resolved)
