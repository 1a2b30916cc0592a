"""
Calculation Records

Versioned, recomputable persistence of calculator runs.
"""

from .models import Base, CalculationRecord
from .schema import (
    RecordStatus,
    PreviewRequest,
    CreateRequest,
    UpdateRequest,
    parse_request,
)
from .store import make_engine, make_session_factory, init_db
from .manager import CalculationRecordManager

__all__ = [
    "Base",
    "CalculationRecord",
    "RecordStatus",
    "PreviewRequest",
    "CreateRequest",
    "UpdateRequest",
    "parse_request",
    "make_engine",
    "make_session_factory",
    "init_db",
    "CalculationRecordManager",
]
