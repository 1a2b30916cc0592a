"""
Calculation Record Manager

Create, read, update and delete calculation records. Results and
summaries are never accepted from the caller: they are always recomputed
by the registered calculator, so a stored record is reproducible from its
input_parameters.

Each operation runs in its own session and transaction. A validation or
computation failure rolls the transaction back and leaves the store
unchanged.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..calculators import CalculatorRegistry, default_registry
from ..errors import RecordNotFound, VersionConflict
from .models import CalculationRecord
from .schema import CreateRequest, PreviewRequest, UpdateRequest, parse_request

logger = logging.getLogger(__name__)

# Update fields that cannot be cleared
_NON_NULLABLE = ("calculation_name", "input_parameters", "status")


class CalculationRecordManager:
    """
    Versioned calculation records over a SQLAlchemy session factory.

    Args:
        session_factory: sessionmaker bound to an initialised engine
        registry: Calculator registry; defaults to every calculator
        default_actor: Recorded as created_by/updated_by when the payload names nobody
    """

    def __init__(self, session_factory: sessionmaker,
                 registry: Optional[CalculatorRegistry] = None,
                 default_actor: Optional[str] = None):
        self.session_factory = session_factory
        self.registry = registry if registry is not None else default_registry()
        self.default_actor = default_actor

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _load(session: Session, record_id: int) -> CalculationRecord:
        record = session.get(CalculationRecord, record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    # -------------------------------------------------------------------------

    def preview(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Compute without persisting; returns {"results", "summary"}."""
        request = parse_request(PreviewRequest, payload)
        results, summary = self.registry.run(request.calculation_type, request.input_parameters)
        logger.debug(f"Previewed {request.calculation_type}")
        return {"results": results, "summary": summary}

    def create(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Compute and persist a new record at version 1."""
        request = parse_request(CreateRequest, payload)
        ctype = self.registry.resolve_type(request.calculation_type)
        results, summary = self.registry.run(ctype, request.input_parameters)

        now = datetime.now()
        actor = request.created_by or request.calculated_by or self.default_actor
        record = CalculationRecord(
            project_id=request.project_id,
            building_id=request.building_id,
            selected_buildings=request.selected_buildings,
            calculation_type=ctype.value,
            calculation_name=request.calculation_name,
            input_parameters=request.input_parameters,
            results=results,
            summary=summary,
            status=request.status,
            remarks=request.remarks,
            calculated_by=request.calculated_by or actor,
            created_by=actor,
            updated_by=actor,
            version=1,
            created_at=now,
            updated_at=now,
        )

        with self._transaction() as session:
            session.add(record)
            session.flush()
            data = record.to_dict()

        logger.info(f"Created calculation {data['id']} ({ctype.value}) for project {request.project_id}")
        return data

    def list(self, project_id: int, calculation_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Record projections for a project, newest first. Excludes results and inputs."""
        query = select(CalculationRecord).where(CalculationRecord.project_id == project_id)
        if calculation_type:
            ctype = self.registry.resolve_type(calculation_type)
            query = query.where(CalculationRecord.calculation_type == ctype.value)
        query = query.order_by(CalculationRecord.created_at.desc(), CalculationRecord.id.desc())

        with self._transaction() as session:
            return [r.to_summary_dict() for r in session.scalars(query)]

    def get(self, record_id: int) -> Dict[str, Any]:
        """Full record; RecordNotFound when absent."""
        with self._transaction() as session:
            return self._load(session, record_id).to_dict()

    def update(self, record_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Partially update a record.

        Results and summary are recomputed only when input_parameters is
        present. The version is incremented on every successful update.
        When expected_version is given and differs from the stored version,
        VersionConflict is raised and nothing changes.
        """
        request = parse_request(UpdateRequest, payload)
        changes = {k: v for k, v in request.changes().items()
                   if not (k in _NON_NULLABLE and v is None)}

        with self._transaction() as session:
            record = self._load(session, record_id)

            if request.expected_version is not None and request.expected_version != record.version:
                raise VersionConflict(record_id, request.expected_version, record.version)

            if "input_parameters" in changes:
                results, summary = self.registry.run(record.calculation_type, changes["input_parameters"])
                record.results = results
                record.summary = summary
                logger.info(f"Recomputed calculation {record_id} ({record.calculation_type})")

            for field, value in changes.items():
                setattr(record, field, value)

            record.version = record.version + 1
            record.updated_by = request.updated_by or self.default_actor
            record.updated_at = datetime.now()
            session.flush()
            data = record.to_dict()

        logger.info(f"Updated calculation {record_id} to version {data['version']}")
        return data

    def delete(self, record_id: int) -> None:
        with self._transaction() as session:
            session.delete(self._load(session, record_id))
        logger.info(f"Deleted calculation {record_id}")
