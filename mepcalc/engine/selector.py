"""
Standard-Size Selector

Picks the smallest member of an ascending catalog that meets a requirement.
Requirements beyond the catalog return the largest size flagged as
exceeded; callers turn that into a "parallel runs may be required" warning.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Sequence


@dataclass(frozen=True)
class Selection:
    selected: Any
    exceeded_catalog: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"selected": self.selected, "exceededCatalog": self.exceeded_catalog}


def select(catalog: Sequence, required) -> Selection:
    """
    Smallest catalog entry >= required.

    Args:
        catalog: Ascending standard sizes
        required: Required continuous value

    Returns:
        Selection (max entry with exceeded_catalog=True when nothing fits)
    """
    if not catalog:
        raise ValueError("Cannot select from an empty catalog")

    for size in catalog:
        if size >= required:
            return Selection(size, False)
    return Selection(catalog[-1], True)


def select_where(catalog: Sequence, predicate: Callable[[Any], bool]) -> Selection:
    """First catalog entry satisfying predicate, same exceeded policy as select()."""
    if not catalog:
        raise ValueError("Cannot select from an empty catalog")

    for size in catalog:
        if predicate(size):
            return Selection(size, False)
    return Selection(catalog[-1], True)
