"""
Engine Primitives

Shared building blocks composed by every calculator: reference tables,
derating composition, standard-size selection, curve interpolation,
governing-criterion selection and critical-path analysis.
"""

from .tables import (
    ReferenceTableStore,
    LookupFailure,
    TableNotFound,
    KeyNotFound,
    load_reference_tables,
    default_store,
    merge_stores,
    as_plain,
)

from .derating import (
    FactorSpec,
    FactorResult,
    DeratingFactorSet,
    compose,
)

from .selector import (
    Selection,
    select,
    select_where,
)

from .interpolate import interpolate

from .governing import (
    Criterion,
    GoverningResult,
    select_governing,
)

from .network import (
    Segment,
    PathResult,
    analyze_paths,
    TREE,
    FLAT,
)

__all__ = [
    # Tables
    "ReferenceTableStore",
    "LookupFailure",
    "TableNotFound",
    "KeyNotFound",
    "load_reference_tables",
    "default_store",
    "merge_stores",
    "as_plain",
    # Derating
    "FactorSpec",
    "FactorResult",
    "DeratingFactorSet",
    "compose",
    # Selection
    "Selection",
    "select",
    "select_where",
    "interpolate",
    "Criterion",
    "GoverningResult",
    "select_governing",
    # Networks
    "Segment",
    "PathResult",
    "analyze_paths",
    "TREE",
    "FLAT",
]
