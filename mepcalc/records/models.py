"""
Calculation Record ORM Model

One row per saved calculation. results and summary are always derivable
from input_parameters by the calculator named in calculation_type.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CalculationRecord(Base):
    __tablename__ = "mep_calculations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, nullable=False, index=True)
    building_id = Column(Integer, nullable=True)
    selected_buildings = Column(JSON, nullable=True)

    calculation_type = Column(String(50), nullable=False)
    calculation_name = Column(String(255), nullable=False)
    input_parameters = Column(JSON, nullable=False)
    results = Column(JSON, nullable=True)
    summary = Column(JSON, nullable=True)

    status = Column(String(50), nullable=False, default="Draft")
    calculated_by = Column(String(100), nullable=True)
    verified_by = Column(String(100), nullable=True)
    approved_by = Column(String(100), nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    # Columns returned by list(); results and input_parameters stay out
    LIST_COLUMNS = (
        "id", "project_id", "calculation_type", "calculation_name", "summary",
        "status", "calculated_by", "verified_by", "remarks", "version",
        "created_at", "updated_at",
    )

    def __repr__(self) -> str:
        return f"<CalculationRecord(id={self.id}, type={self.calculation_type}, v{self.version})>"

    def to_dict(self) -> Dict[str, Any]:
        """Full record as a plain dict."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}

    def to_summary_dict(self) -> Dict[str, Any]:
        """List projection of the record."""
        return {name: getattr(self, name) for name in self.LIST_COLUMNS}
