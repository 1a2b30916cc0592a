"""Record manager behaviour over an in-memory SQLite database."""
import unittest

from mepcalc.config import Settings
from mepcalc.errors import (
    ComputationError,
    MissingFieldError,
    RecordNotFound,
    UnknownCalculationType,
    ValidationError,
    VersionConflict,
)
from mepcalc.records import (
    CalculationRecordManager,
    RecordStatus,
    UpdateRequest,
    init_db,
    make_engine,
    make_session_factory,
    parse_request,
)

CABLE_INPUT = {"loadKW": 10, "cableLength": 50}


def _manager():
    engine = make_engine(Settings(database_url="sqlite://"))
    init_db(engine)
    return CalculationRecordManager(make_session_factory(engine), default_actor="system")


def _create_payload(**overrides):
    payload = {
        "projectId": 7,
        "calculationType": "cable_selection",
        "calculationName": "Pump feeder",
        "inputParameters": dict(CABLE_INPUT),
        "calculatedBy": "eng-1",
    }
    payload.update(overrides)
    return payload


class RequestSchemaTests(unittest.TestCase):

    def test_missing_fields_named(self):
        with self.assertRaises(MissingFieldError) as ctx:
            _manager().create({"calculationType": "cable_selection"})
        self.assertEqual(
            str(ctx.exception),
            "Missing required fields: project_id, calculation_name, input_parameters",
        )

    def test_snake_case_accepted(self):
        request = parse_request(UpdateRequest, {"calculation_name": "Renamed", "expected_version": 2})
        self.assertEqual(request.changes(), {"calculation_name": "Renamed"})

    def test_update_rejects_type_change(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_request(UpdateRequest, {"calculationType": "fire_pump"})
        self.assertIn("calculationType", ctx.exception.fields)


class RecordManagerTests(unittest.TestCase):

    def setUp(self):
        self.manager = _manager()

    def test_preview_does_not_persist(self):
        out = self.manager.preview({"calculationType": "cable_selection", "inputParameters": CABLE_INPUT})
        self.assertEqual(out["summary"]["selectedCable"], 4)
        self.assertEqual(self.manager.list(7), [])

    def test_create_sets_version_status_and_actors(self):
        record = self.manager.create(_create_payload())
        self.assertEqual(record["version"], 1)
        self.assertEqual(record["status"], RecordStatus.DRAFT.value)
        self.assertEqual(record["calculated_by"], "eng-1")
        self.assertEqual(record["calculation_type"], "cable_selection")
        self.assertEqual(record["summary"]["selectedCable"], 4)
        self.assertEqual(self.manager.get(record["id"])["results"], record["results"])

    def test_unknown_type_rejected_before_persisting(self):
        with self.assertRaises(UnknownCalculationType):
            self.manager.create(_create_payload(calculationType="solar_pv"))
        self.assertEqual(self.manager.list(7), [])

    def test_computation_error_leaves_store_unchanged(self):
        bad = {"zones": [{"type": "PRESSURIZATION", "numberOfDoors": 1, "numberOfSimultaneousOpenDoors": 2}]}
        with self.assertRaises(ComputationError):
            self.manager.create(_create_payload(calculationType="ventilation", inputParameters=bad))
        self.assertEqual(self.manager.list(7), [])

        record = self.manager.create(_create_payload(calculationType="ventilation", inputParameters={}))
        with self.assertRaises(ComputationError):
            self.manager.update(record["id"], {"inputParameters": bad})
        stored = self.manager.get(record["id"])
        self.assertEqual(stored["version"], 1)
        self.assertEqual(stored["input_parameters"], {})

    def test_list_is_newest_first_projection(self):
        first = self.manager.create(_create_payload(calculationName="First"))
        second = self.manager.create(_create_payload(calculationName="Second"))
        self.manager.create(_create_payload(projectId=8))
        self.manager.create(_create_payload(calculationType="fire_pump", inputParameters={}))

        listed = self.manager.list(7, "cable_selection")
        self.assertEqual([r["id"] for r in listed], [second["id"], first["id"]])
        for row in listed:
            self.assertNotIn("results", row)
            self.assertNotIn("input_parameters", row)
            self.assertIn("summary", row)
        self.assertEqual(len(self.manager.list(7)), 3)

    def test_update_without_inputs_keeps_results(self):
        record = self.manager.create(_create_payload())
        updated = self.manager.update(record["id"], {"remarks": "checked", "status": "Under Review",
                                                      "verifiedBy": "eng-2", "updatedBy": "eng-2"})
        self.assertEqual(updated["version"], 2)
        self.assertEqual(updated["results"], record["results"])
        self.assertEqual(updated["summary"], record["summary"])
        self.assertEqual(updated["status"], "Under Review")
        self.assertEqual(updated["updated_by"], "eng-2")

    def test_update_with_inputs_recomputes(self):
        record = self.manager.create(_create_payload())
        updated = self.manager.update(record["id"], {"inputParameters": {"loadKW": 100, "cableLength": 50}})
        self.assertEqual(updated["version"], 2)
        self.assertGreater(updated["summary"]["currentA"], record["summary"]["currentA"])
        self.assertEqual(updated["updated_by"], "system")

    def test_null_status_and_name_keep_stored_values(self):
        record = self.manager.create(_create_payload())
        updated = self.manager.update(record["id"], {"status": None, "calculationName": None,
                                                      "remarks": "nulls ignored"})
        self.assertEqual(updated["status"], "Draft")
        self.assertEqual(updated["calculation_name"], "Pump feeder")
        self.assertEqual(updated["remarks"], "nulls ignored")
        self.assertEqual(updated["version"], 2)

    def test_expected_version_conflict(self):
        record = self.manager.create(_create_payload())
        self.manager.update(record["id"], {"remarks": "v2", "expectedVersion": 1})
        with self.assertRaises(VersionConflict) as ctx:
            self.manager.update(record["id"], {"remarks": "stale", "expectedVersion": 1})
        self.assertEqual(ctx.exception.actual, 2)
        self.assertEqual(self.manager.get(record["id"])["remarks"], "v2")

    def test_get_update_delete_missing_record(self):
        with self.assertRaises(RecordNotFound):
            self.manager.get(999)
        with self.assertRaises(RecordNotFound):
            self.manager.update(999, {"remarks": "x"})
        with self.assertRaises(RecordNotFound):
            self.manager.delete(999)

    def test_delete(self):
        record = self.manager.create(_create_payload())
        self.manager.delete(record["id"])
        with self.assertRaises(RecordNotFound):
            self.manager.get(record["id"])


if __name__ == "__main__":
    unittest.main()
