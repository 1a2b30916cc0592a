"""
MEP Calculation Engine
Deterministic MEP design calculators with versioned, recomputable records.
"""

__version__ = "1.0.0"

from pathlib import Path

# Package paths
PACKAGE_DIR = Path(__file__).parent
RULES_DIR = PACKAGE_DIR / "rules"

from .errors import (  # noqa: E402
    MepCalcError,
    ValidationError,
    ComputationError,
    UnknownCalculationType,
    RecordNotFound,
    VersionConflict,
)
from .calculators import (  # noqa: E402
    CalculationType,
    CalculatorRegistry,
    default_registry,
)

__all__ = [
    "__version__",
    "PACKAGE_DIR",
    "RULES_DIR",
    # Errors
    "MepCalcError",
    "ValidationError",
    "ComputationError",
    "UnknownCalculationType",
    "RecordNotFound",
    "VersionConflict",
    # Registry
    "CalculationType",
    "CalculatorRegistry",
    "default_registry",
]
