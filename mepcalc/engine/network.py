"""
Network Path Analyzer

Finds the critical path of a parent-linked segment network: the
root-to-leaf path with the largest accumulated cost (pressure drop,
voltage drop).

Two modes:
- TREE: at least one segment declares a parent. Depth-first traversal
  from every root; cycles and dangling parents are input errors.
- FLAT: no segment declares a parent. The whole list is treated as one
  implicit series path and the costs are summed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional

from ..errors import ComputationError, NetworkCycleError

logger = logging.getLogger(__name__)

TREE = "TREE"
FLAT = "FLAT"


@dataclass(frozen=True)
class Segment:
    id: Hashable
    cost: float
    parent_id: Optional[Hashable] = None


@dataclass
class PathResult:
    mode: str
    path: List[Hashable] = field(default_factory=list)  # root -> leaf
    total: float = 0.0
    leaf_totals: Dict[Hashable, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "path": list(self.path),
            "total": self.total,
            "leafTotals": dict(self.leaf_totals),
        }


def _has_parent(seg: Segment) -> bool:
    return seg.parent_id is not None and seg.parent_id != ""


def _check_ancestry(by_id: Dict[Hashable, Segment]) -> None:
    """Every parent chain must end at a root without revisiting a segment."""
    reaches_root: Dict[Hashable, bool] = {}
    for start in by_id:
        chain: List[Hashable] = []
        seen = set()
        node = start
        while True:
            if node in reaches_root:
                break
            if node in seen:
                loop = chain[chain.index(node):] + [node]
                raise NetworkCycleError(loop)
            seen.add(node)
            chain.append(node)
            seg = by_id[node]
            if not _has_parent(seg):
                break
            if seg.parent_id not in by_id:
                raise ComputationError(
                    f"Segment '{seg.id}' references unknown parent '{seg.parent_id}'"
                )
            node = seg.parent_id
        for n in chain:
            reaches_root[n] = True


def analyze_paths(segments: Iterable[Segment]) -> PathResult:
    """
    Critical path over a set of segments.

    Returns:
        PathResult with the maximum-cost root-to-leaf path. Ties keep the
        path found first (roots and children in input order).
    """
    segments = list(segments)
    by_id: Dict[Hashable, Segment] = {}
    for seg in segments:
        if seg.id in by_id:
            raise ComputationError(f"Duplicate segment id: {seg.id}")
        by_id[seg.id] = seg

    if not segments:
        return PathResult(mode=FLAT)

    if not any(_has_parent(s) for s in segments):
        total = sum(s.cost for s in segments)
        return PathResult(
            mode=FLAT,
            path=[s.id for s in segments],
            total=total,
            leaf_totals={segments[-1].id: total},
        )

    _check_ancestry(by_id)

    children: Dict[Hashable, List[Segment]] = {s.id: [] for s in segments}
    roots: List[Segment] = []
    for seg in segments:
        if _has_parent(seg):
            children[seg.parent_id].append(seg)
        else:
            roots.append(seg)

    best_path: List[Hashable] = []
    best_total: Optional[float] = None
    leaf_totals: Dict[Hashable, float] = {}

    for root in roots:
        # (segment, accumulated cost, path so far)
        stack = [(root, root.cost, [root.id])]
        while stack:
            seg, acc, path = stack.pop()
            kids = children[seg.id]
            if not kids:
                leaf_totals[seg.id] = acc
                if best_total is None or acc > best_total:
                    best_total, best_path = acc, path
                continue
            for child in reversed(kids):
                stack.append((child, acc + child.cost, path + [child.id]))

    logger.debug(f"Critical path {best_path} total {best_total}")
    return PathResult(mode=TREE, path=best_path, total=best_total or 0.0, leaf_totals=leaf_totals)
