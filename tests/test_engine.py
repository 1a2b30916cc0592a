"""Unit tests for the shared engine primitives over synthetic tables."""
import tempfile
import unittest
from pathlib import Path

from mepcalc.engine import (
    FLAT,
    TREE,
    Criterion,
    FactorSpec,
    KeyNotFound,
    ReferenceTableStore,
    Segment,
    TableNotFound,
    analyze_paths,
    compose,
    interpolate,
    load_reference_tables,
    merge_stores,
    select,
    select_governing,
    select_where,
)
from mepcalc.engine.selector import Selection
from mepcalc.errors import ComputationError, ConfigError, NetworkCycleError


def _store():
    return ReferenceTableStore({
        "ambient": {30: 1.0, 35: 0.96, 40: 0.91, 45: 0.87},
        "grouping": {1: 1.0, 2: 0.8, 3: 0.7},
        "method": {"Trefoil": 1.0, "Duct": 0.85},
        "sizes": [1.5, 2.5, 4, 6, 10],
        "bad": {1: 0.0},
    })


class ReferenceTableStoreTests(unittest.TestCase):

    def test_exact_lookup_and_default(self):
        store = _store()
        self.assertEqual(store.lookup("method", "Duct"), 0.85)
        self.assertIsNone(store.lookup("method", "Buried", default=None))
        with self.assertRaises(KeyNotFound):
            store.lookup("method", "Buried")

    def test_numeric_lookup_tolerates_float_keys(self):
        self.assertEqual(_store().lookup("grouping", 2.0), 0.8)

    def test_missing_table(self):
        with self.assertRaises(TableNotFound):
            _store().table("nope")

    def test_nearest_picks_closest_key(self):
        self.assertEqual(_store().nearest("ambient", 41), (40, 0.91))
        self.assertEqual(_store().nearest("ambient", 100), (45, 0.87))

    def test_nearest_midpoint_resolves_to_lower_key(self):
        store = _store()
        self.assertEqual(store.nearest("ambient", 37.5)[0], 35)
        # Deterministic on repeat
        self.assertEqual(store.nearest("ambient", 37.5), store.nearest("ambient", 37.5))

    def test_tables_are_read_only(self):
        store = _store()
        with self.assertRaises(TypeError):
            store.table("ambient")[50] = 0.8
        self.assertIsInstance(store.catalog("sizes"), tuple)

    def test_catalog_of_keyed_table_is_sorted(self):
        self.assertEqual(_store().catalog("grouping"), (1, 2, 3))

    def test_merge_later_store_wins(self):
        merged = merge_stores([_store(), ReferenceTableStore({"method": {"Trefoil": 0.9}})])
        self.assertEqual(merged.lookup("method", "Trefoil"), 0.9)
        self.assertEqual(merged.lookup("grouping", 3), 0.7)

    def test_load_from_directory_rejects_duplicates(self):
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, "a.yaml").write_text("sizes: [1, 2, 3]\n", encoding="utf-8")
            store = load_reference_tables(Path(tmp))
            self.assertEqual(store.catalog("sizes"), (1, 2, 3))

            Path(tmp, "b.yaml").write_text("sizes: [4]\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_reference_tables(Path(tmp))

    def test_missing_rules_directory(self):
        with self.assertRaises(ConfigError):
            load_reference_tables(Path("/nonexistent/rules"))


class DeratingTests(unittest.TestCase):

    def test_combined_is_product_of_applied_factors(self):
        result = compose(_store(), [
            FactorSpec("ambient", "ambient", 40),
            FactorSpec("grouping", "grouping", 2),
            FactorSpec("method", "method", "Duct", mode="exact"),
        ])
        self.assertAlmostEqual(result.combined, 0.91 * 0.8 * 0.85)
        self.assertEqual(result.get("ambient").key, 40)

    def test_non_applicable_factor_contributes_one(self):
        result = compose(_store(), [
            FactorSpec("ambient", "ambient", 40),
            FactorSpec("grouping", "grouping", 3, applies=False),
        ])
        self.assertAlmostEqual(result.combined, 0.91)
        self.assertFalse(result.get("grouping").applied)
        self.assertEqual(result.factor("grouping"), 1.0)

    def test_exact_miss_uses_default(self):
        result = compose(_store(), [FactorSpec("method", "method", "Buried", mode="exact", default=0.9)])
        self.assertAlmostEqual(result.combined, 0.9)

    def test_non_positive_factor_is_computation_error(self):
        with self.assertRaises(ComputationError):
            compose(_store(), [FactorSpec("bad", "bad", 1)])


class SelectorTests(unittest.TestCase):

    def test_smallest_size_meeting_requirement(self):
        sizes = [1.5, 2.5, 4, 6, 10]
        self.assertEqual(select(sizes, 2.0), Selection(2.5, False))
        self.assertEqual(select(sizes, 4), Selection(4, False))
        self.assertEqual(select(sizes, 0), Selection(1.5, False))

    def test_exceeding_catalog_returns_largest_flagged(self):
        result = select([1.5, 2.5, 4], 50)
        self.assertEqual(result.selected, 4)
        self.assertTrue(result.exceeded_catalog)

    def test_select_where_uses_predicate(self):
        result = select_where([(100, 50), (200, 100), (300, 150)], lambda s: s[0] * s[1] >= 20000)
        self.assertEqual(result.selected, (200, 100))

    def test_empty_catalog_raises(self):
        with self.assertRaises(ValueError):
            select([], 1)


class InterpolateTests(unittest.TestCase):

    SAMPLES = [(10, 0.4), (20, 0.5), (30, 0.64)]

    def test_linear_between_samples(self):
        self.assertAlmostEqual(interpolate(self.SAMPLES, 25), 0.57)
        self.assertAlmostEqual(interpolate(self.SAMPLES, 15), 0.45)

    def test_clamped_at_ends(self):
        self.assertEqual(interpolate(self.SAMPLES, 0), 0.4)
        self.assertEqual(interpolate(self.SAMPLES, 1000), 0.64)

    def test_monotonic(self):
        values = [interpolate(self.SAMPLES, x) for x in range(0, 40)]
        self.assertEqual(values, sorted(values))

    def test_rejects_unsorted_samples(self):
        with self.assertRaises(ValueError):
            interpolate([(10, 1), (5, 2)], 7)


class GoverningTests(unittest.TestCase):

    SIZES = [1.5, 2.5, 4, 6, 10]

    def test_largest_resolved_size_governs(self):
        result = select_governing({"Current": 1.2, "Voltage Drop": 3.5}, self.SIZES)
        self.assertEqual(result.selected_size, 4)
        self.assertEqual(result.governing_criterion, "Voltage Drop")
        self.assertEqual(result.resolved[result.governing_criterion].selected, result.selected_size)

    def test_tie_goes_to_first_criterion(self):
        result = select_governing([("Current", 3.0), ("Voltage Drop", 3.5)], self.SIZES)
        self.assertEqual(result.governing_criterion, "Current")

    def test_pre_resolved_criterion(self):
        result = select_governing([
            Criterion("Current", resolved=Selection(6)),
            Criterion("Short Circuit", required=2.0),
        ], self.SIZES)
        self.assertEqual(result.selected_size, 6)
        self.assertEqual(result.to_dict()["resolvedSizes"], {"Current": 6, "Short Circuit": 2.5})

    def test_exceeded_catalog_reported_when_any_criterion_exceeds(self):
        result = select_governing([
            Criterion("Current", resolved=Selection(10)),
            Criterion("Voltage Drop", required=20.0),
        ], self.SIZES)
        self.assertEqual(result.governing_criterion, "Current")
        self.assertFalse(result.resolved["Current"].exceeded_catalog)
        self.assertTrue(result.exceeded_catalog)
        self.assertTrue(result.to_dict()["exceededCatalog"])


class NetworkTests(unittest.TestCase):

    def test_flat_list_sums_costs(self):
        result = analyze_paths([Segment("a", 1.0), Segment("b", 2.0), Segment("c", 3.0)])
        self.assertEqual(result.mode, FLAT)
        self.assertEqual(result.total, 6.0)

    def test_single_chain_tree_equals_flat_sum(self):
        chain = [Segment("a", 1.0), Segment("b", 2.0, "a"), Segment("c", 3.0, "b")]
        result = analyze_paths(chain)
        self.assertEqual(result.mode, TREE)
        self.assertEqual(result.total, 6.0)
        self.assertEqual(result.path, ["a", "b", "c"])

    def test_critical_path_is_main_plus_largest_branch(self):
        result = analyze_paths([
            Segment("main", 50.0),
            Segment("b1", 20.0, "main"),
            Segment("b2", 35.0, "main"),
            Segment("b3", 10.0, "main"),
        ])
        self.assertEqual(result.path, ["main", "b2"])
        self.assertEqual(result.total, 85.0)
        self.assertEqual(len(result.leaf_totals), 3)

    def test_cycle_detected(self):
        with self.assertRaises(NetworkCycleError):
            analyze_paths([Segment("r", 1.0), Segment("a", 1.0, "b"), Segment("b", 1.0, "a")])

    def test_unknown_parent(self):
        with self.assertRaises(ComputationError):
            analyze_paths([Segment("a", 1.0, "ghost")])


if __name__ == "__main__":
    unittest.main()
