"""Settings loading, record export and the command line interface."""
import csv
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from openpyxl import load_workbook

from mepcalc import RULES_DIR
from mepcalc.__main__ import main
from mepcalc.config import Settings, load_settings
from mepcalc.errors import ConfigError
from mepcalc.export import export_record_workbook, export_records_csv, flatten
from mepcalc.records import CalculationRecordManager, init_db, make_engine, make_session_factory

_ENV_KEYS = ("MEPCALC_DATABASE_URL", "MEPCALC_RULES_DIR", "MEPCALC_ECHO_SQL", "MEPCALC_CONFIG")


def _clean_env():
    return {k: v for k, v in os.environ.items() if k not in _ENV_KEYS}


class SettingsTests(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_defaults_without_file(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            settings = load_settings(Path(self.tmp.name) / "missing.yaml")
        self.assertEqual(settings.database_url, "sqlite:///mepcalc.db")
        self.assertEqual(settings.rules_dir, RULES_DIR)
        self.assertFalse(settings.echo_sql)

    def test_yaml_then_environment(self):
        path = Path(self.tmp.name) / "mepcalc.yaml"
        path.write_text("database_url: sqlite:///from-file.db\necho_sql: true\n", encoding="utf-8")

        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            self.assertEqual(load_settings(path).database_url, "sqlite:///from-file.db")

        env = dict(_clean_env(), MEPCALC_DATABASE_URL="sqlite:///from-env.db", MEPCALC_ECHO_SQL="0")
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings(path)
        self.assertEqual(settings.database_url, "sqlite:///from-env.db")
        self.assertFalse(settings.echo_sql)

    def test_config_path_from_environment(self):
        path = Path(self.tmp.name) / "other.yaml"
        path.write_text("default_actor: reviewer\n", encoding="utf-8")
        with mock.patch.dict(os.environ, dict(_clean_env(), MEPCALC_CONFIG=str(path)), clear=True):
            self.assertEqual(load_settings().default_actor, "reviewer")

    def test_bad_rules_dir(self):
        env = dict(_clean_env(), MEPCALC_RULES_DIR=str(Path(self.tmp.name) / "nope"))
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ConfigError):
                load_settings(Path(self.tmp.name) / "missing.yaml")

    def test_non_mapping_file(self):
        path = Path(self.tmp.name) / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_settings(path)


class ExportTests(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        engine = make_engine(Settings(database_url="sqlite://"))
        init_db(engine)
        self.manager = CalculationRecordManager(make_session_factory(engine))
        self.record = self.manager.create({
            "projectId": 1,
            "calculationType": "cable_selection",
            "calculationName": "Lift feeder",
            "inputParameters": {"loadKW": 10},
        })

    def test_flatten_paths(self):
        pairs = dict(flatten({"a": {"b": [1, {"c": 2}]}, "d": []}))
        self.assertEqual(pairs, {"a.b[0]": 1, "a.b[1].c": 2, "d": None})

    def test_workbook_sheets(self):
        path = export_record_workbook(self.record, Path(self.tmp.name) / "out" / "calc.xlsx")
        wb = load_workbook(path)
        self.assertEqual(wb.sheetnames, ["Summary", "Inputs", "Results"])
        self.assertEqual(wb["Summary"]["B3"].value, "Lift feeder")
        self.assertEqual(wb["Inputs"]["A2"].value, "loadKW")
        self.assertEqual(wb["Inputs"]["B2"].value, 10)
        self.assertEqual(wb["Results"]["A1"].value, "Field")

    def test_csv_projection(self):
        path = export_records_csv(self.manager.list(1), Path(self.tmp.name) / "calcs.csv")
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), 1)
        self.assertNotIn("results", rows[0])
        self.assertEqual(json.loads(rows[0]["summary"])["selectedCable"], 4)


class CLITests(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.db = f"sqlite:///{Path(self.tmp.name) / 'cli.db'}"
        patcher = mock.patch.dict(os.environ, _clean_env(), clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(["--db", self.db, *argv])
        return code, out.getvalue(), err.getvalue()

    def test_types(self):
        code, out, _ = self._run("types")
        self.assertEqual(code, 0)
        self.assertIn("electrical_load", out.split())
        self.assertEqual(len(out.split()), 13)

    def test_preview_inline_json(self):
        code, out, _ = self._run("preview", "--type", "cable_selection", "--input", '{"loadKW": 10}', "--summary")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["selectedCable"], 4)

    def test_unknown_type_exit_code(self):
        code, _, err = self._run("preview", "--type", "solar_pv")
        self.assertEqual(code, 2)
        self.assertIn("Unknown calculation type: solar_pv", err)

    def test_create_update_export_cycle(self):
        inputs = Path(self.tmp.name) / "inputs.json"
        inputs.write_text(json.dumps({"loadKW": 10}), encoding="utf-8")

        code, out, _ = self._run("create", "--project", "3", "--type", "cable_selection",
                                 "--name", "Feeder", "--input", str(inputs))
        self.assertEqual(code, 0)
        self.assertIn("Created calculation 1 (version 1)", out)

        code, out, _ = self._run("update", "1", "--remarks", "ok", "--expected-version", "1")
        self.assertEqual(code, 0)
        self.assertIn("version 2", out)

        code, _, err = self._run("update", "1", "--remarks", "stale", "--expected-version", "1")
        self.assertEqual(code, 1)
        self.assertIn("version 2", err)

        xlsx = Path(self.tmp.name) / "feeder.xlsx"
        code, _, _ = self._run("export", "--id", "1", "--output", str(xlsx))
        self.assertEqual(code, 0)
        self.assertTrue(xlsx.exists())

        code, _, _ = self._run("delete", "1")
        self.assertEqual(code, 0)
        code, _, err = self._run("get", "1")
        self.assertEqual(code, 1)
        self.assertIn("Calculation not found: 1", err)


if __name__ == "__main__":
    unittest.main()
