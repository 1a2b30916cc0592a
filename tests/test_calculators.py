"""Calculator behaviour over the packaged reference tables."""
import json
import unittest

from mepcalc.calculators import (
    ALL_CALCULATORS,
    CalculationType,
    CableSelectionCalculator,
    DuctSizingCalculator,
    ElectricalLoadCalculator,
    FirePumpCalculator,
    HVACLoadCalculator,
    LightingDesignCalculator,
    PanelScheduleCalculator,
    PHEPumpCalculator,
    RisingMainCalculator,
    VentilationCalculator,
    default_registry,
)
from mepcalc.calculators.electrical_load import working_units
from mepcalc.calculators.plumbing_fixture import hunter_flow
from mepcalc.engine import default_store
from mepcalc.errors import ComputationError, InvalidValueError, UnknownCalculationType

SUMMARY_KEYS = {
    "electrical_load": {"totalConnectedLoadKW", "maxDemandKW", "transformerKVA"},
    "hvac_load": {"totalCoolingTR", "chillerCapacityTR", "totalPowerKW"},
    "fire_pump": {"flowM3h", "headM", "pumpPowerKW"},
    "cable_selection": {"selectedCable", "currentA", "voltageDropPercent"},
    "lighting_design": {"totalLuminaires", "totalWattage", "avgLPD"},
    "earthing_lightning": {"earthResistance", "protectionLevel", "electrodes"},
    "phe_pump": {"flowM3h", "headM", "motorKW"},
    "plumbing_fixture": {"totalFixtureUnits", "peakFlowLPS", "riserSize"},
    "ventilation": {"totalSupplyCFM", "totalExhaustCFM", "totalFanPowerKW"},
    "duct_sizing": {"fanStaticPa", "maxVelocity", "totalLength"},
    "panel_schedule": {"totalLoadKW", "diversifiedKW", "incomingDevice"},
    "rising_main": {"riserSize", "maxCurrentA", "maxVdropPercent"},
    "fire_fighting": {"systems", "waterStorageM3", "pumpPowerKW"},
}


class RegistryTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.registry = default_registry()

    def test_every_type_registered_in_order(self):
        self.assertEqual(self.registry.types, [t.value for t in CalculationType])
        self.assertEqual(len(ALL_CALCULATORS), len(CalculationType))

    def test_unknown_type_lists_valid_types(self):
        with self.assertRaises(UnknownCalculationType) as ctx:
            self.registry.resolve("solar_pv")
        message = str(ctx.exception)
        self.assertTrue(message.startswith("Unknown calculation type: solar_pv. Valid types: "))
        for t in CalculationType:
            self.assertIn(t.value, message)

    def test_resolve_accepts_enum_and_string(self):
        self.assertIs(self.registry.resolve("fire_pump"), self.registry.resolve(CalculationType.FIRE_PUMP))

    def test_every_type_runs_on_minimal_input(self):
        for ctype in CalculationType:
            with self.subTest(ctype=ctype.value):
                results, summary = self.registry.run(ctype.value, {})
                self.assertIsInstance(results, dict)
                self.assertEqual(set(summary), SUMMARY_KEYS[ctype.value])

    def test_calculate_is_idempotent(self):
        for ctype in CalculationType:
            with self.subTest(ctype=ctype.value):
                first = self.registry.run(ctype.value, {})
                second = self.registry.run(ctype.value, {})
                self.assertEqual(json.dumps(first, sort_keys=True), json.dumps(second, sort_keys=True))

    def test_non_numeric_input_is_validation_error(self):
        with self.assertRaises(InvalidValueError) as ctx:
            self.registry.run("cable_selection", {"loadKW": "ten"})
        self.assertEqual(ctx.exception.fields, ["loadKW"])

    def test_non_object_input_rejected(self):
        with self.assertRaises(InvalidValueError):
            self.registry.run("cable_selection", [1, 2])


class CableSelectionTests(unittest.TestCase):

    def setUp(self):
        self.calc = CableSelectionCalculator(default_store())
        self.params = {
            "loadKW": 10, "voltage": 415, "phases": 3, "powerFactor": 0.85,
            "cableLength": 50, "conductorMaterial": "Copper", "insulationType": "XLPE",
            "installationMethod": "Trefoil (touching) in air", "ambientTemp": 40,
            "numberOfCircuits": 1,
        }

    def test_voltage_drop_governs_reference_run(self):
        results, summary = self.calc.run(self.params)
        self.assertEqual(results["loadCurrent"], 16.4)
        self.assertEqual(results["sizingByCurrent"]["selectedSize"], 1.5)
        self.assertEqual(results["sizingByVoltageDrop"]["selectedSize"], 4)
        self.assertEqual(results["selectedCable"]["size"], 4)
        self.assertEqual(results["selectedCable"]["governingCriteria"], "Voltage Drop")
        self.assertLessEqual(results["sizingByVoltageDrop"]["voltageDrop"],
                             results["sizingByVoltageDrop"]["maxAllowableVD"])
        self.assertTrue(results["selectedCable"]["voltageDropCompliant"])
        self.assertEqual(summary["selectedCable"], 4)

    def test_short_circuit_only_with_fault_level(self):
        results, _ = self.calc.run(self.params)
        self.assertIsNone(results["sizingByShortCircuit"])

        results, _ = self.calc.run(dict(self.params, faultLevel=10, faultDuration=1))
        self.assertIsNotNone(results["sizingByShortCircuit"])
        self.assertEqual(results["selectedCable"]["governingCriteria"], "Short Circuit Withstand")

    def test_governing_size_equals_final(self):
        results, _ = self.calc.run(dict(self.params, loadKW=150, cableLength=20))
        governing = results["governing"]
        self.assertEqual(governing["resolvedSizes"][governing["governingCriterion"]],
                         results["selectedCable"]["size"])

    def test_huge_load_warns_instead_of_failing(self):
        results, _ = self.calc.run(dict(self.params, loadKW=5000))
        self.assertTrue(results["governing"]["exceededCatalog"])
        self.assertTrue(results["warnings"])

    def test_out_of_range_phases_and_power_factor_rejected(self):
        with self.assertRaises(InvalidValueError) as ctx:
            self.calc.run(dict(self.params, phases=2))
        self.assertEqual(ctx.exception.fields, ["phases"])
        with self.assertRaises(InvalidValueError) as ctx:
            self.calc.run(dict(self.params, powerFactor=1.5))
        self.assertEqual(ctx.exception.fields, ["powerFactor"])


class PlumbingCurveTests(unittest.TestCase):

    def test_hunters_curve_points(self):
        curve = default_store().table("hunters_curve")
        self.assertEqual(hunter_flow(curve, 25), 0.57)
        self.assertAlmostEqual(hunter_flow(curve, 22.5), 0.535)
        self.assertTrue(0.50 <= hunter_flow(curve, 25) <= 0.63)


class DuctSizingTests(unittest.TestCase):

    def test_critical_path_is_main_plus_largest_branch(self):
        calc = DuctSizingCalculator(default_store())
        results, summary = calc.run({"sections": [
            {"id": "M", "flowM3h": 9000, "lengthM": 30},
            {"id": "B1", "parentId": "M", "flowM3h": 3000, "lengthM": 10},
            {"id": "B2", "parentId": "M", "flowM3h": 3000, "lengthM": 40},
            {"id": "B3", "parentId": "M", "flowM3h": 3000, "lengthM": 20},
        ]})
        by_id = {s["id"]: s for s in results["sections"]}
        self.assertEqual(results["criticalPath"]["mode"], "TREE")
        self.assertEqual(results["criticalPath"]["sectionIds"], ["M", "B2"])
        expected = by_id["M"]["totalPressureDropPa"] + by_id["B2"]["totalPressureDropPa"]
        self.assertAlmostEqual(results["criticalPath"]["totalPressureDropPa"], round(expected), delta=1)
        self.assertEqual(summary["totalLength"], 100)

    def test_cyclic_sections_fail(self):
        calc = DuctSizingCalculator(default_store())
        with self.assertRaises(ComputationError):
            calc.run({"sections": [
                {"id": "M", "flowM3h": 1000},
                {"id": "A", "parentId": "B", "flowM3h": 500},
                {"id": "B", "parentId": "A", "flowM3h": 500},
            ]})


class VentilationTests(unittest.TestCase):

    def setUp(self):
        self.calc = VentilationCalculator(default_store())

    def test_default_zone_is_basement_parking(self):
        results, _ = self.calc.run({})
        zone = results["zoneResults"][0]
        self.assertEqual(zone["spaceType"], "Basement Parking")
        self.assertIsNotNone(zone["coSensorLayout"])

    def test_pressurization_open_door_airflow(self):
        results, _ = self.calc.run({"zones": [{
            "type": "PRESSURIZATION", "numberOfFloors": 9, "numberOfDoors": 10,
            "numberOfSimultaneousOpenDoors": 2,
        }]})
        leakage = results["zoneResults"][0]["leakageCalculation"]
        self.assertEqual(leakage["closedDoors"], 8)
        self.assertAlmostEqual(leakage["airThroughOpenDoorsM3s"], 2 * 1.89 * 1.0)
        self.assertEqual(results["summary"]["totalExhaustCFM"], 0)

    def test_more_open_doors_than_doors_fails(self):
        with self.assertRaises(ComputationError):
            self.calc.run({"zones": [{
                "type": "PRESSURIZATION", "numberOfDoors": 2, "numberOfSimultaneousOpenDoors": 3,
            }]})

    def test_smoke_layer_above_ceiling_fails(self):
        with self.assertRaises(ComputationError):
            self.calc.run({"zones": [{"type": "SMOKE_EXTRACTION", "height": 3.0, "smokeLayerHeight": 3.5}]})


class HVACLoadTests(unittest.TestCase):

    def setUp(self):
        self.calc = HVACLoadCalculator(default_store())

    def test_small_load_single_chiller(self):
        results, _ = self.calc.run({})
        chiller = results["chillerSizing"]
        self.assertEqual(chiller["numberOfChillers"], 1)
        self.assertEqual(chiller["configuration"], "1W")

    def test_large_load_two_working_one_standby(self):
        results, summary = self.calc.run({"rooms": [
            {"name": "Office Floor", "spaceType": "OFFICE", "area": 5000, "occupancy": 500},
        ]})
        chiller = results["chillerSizing"]
        self.assertEqual(chiller["numberOfChillers"], 3)
        self.assertEqual(chiller["configuration"], "2W + 1S")
        self.assertGreaterEqual(chiller["workingCapacityTR"], chiller["requiredTR"])
        self.assertEqual(summary["chillerCapacityTR"], chiller["selectedCapacityTR"] * 3)

    def test_latent_ventilation_load_never_negative(self):
        results, _ = self.calc.run({"city": "DELHI", "season": "winter", "rooms": [
            {"spaceType": "OFFICE", "area": 100, "occupancy": 10},
        ]})
        self.assertGreaterEqual(results["roomResults"][0]["breakdown"]["ventLatent"], 0)


class ElectricalLoadTests(unittest.TestCase):

    def setUp(self):
        self.calc = ElectricalLoadCalculator(default_store())

    def test_working_units(self):
        self.assertEqual(working_units("2W+1S"), 2)
        self.assertEqual(working_units("2 Main+SBY+Jky"), 2)
        self.assertEqual(working_units("10w + 2s"), 10)
        self.assertEqual(working_units("standby only"), 1)

    def test_transformer_standard_size_then_rounding(self):
        self.assertEqual(self.calc._transformer(700), 800)
        self.assertEqual(self.calc._transformer(3150), 3150)
        self.assertEqual(self.calc._transformer(3200), 3500)

    def test_building_diversity_never_applies_to_fire(self):
        metro, _ = self.calc.run({"areaType": "METRO", "numberOfBuildings": 2})
        rural, _ = self.calc.run({"areaType": "RURAL", "numberOfBuildings": 2})
        self.assertEqual(metro["totals"]["perBuilding"]["fire"], rural["totals"]["perBuilding"]["fire"])
        self.assertAlmostEqual(
            metro["totals"]["perBuilding"]["maxDemand"] / rural["totals"]["perBuilding"]["maxDemand"],
            0.5 / 0.4, places=2,
        )
        self.assertEqual(metro["totals"]["numberOfBuildings"], 2)

    def test_unknown_area_type_rejected(self):
        with self.assertRaises(InvalidValueError):
            self.calc.run({"areaType": "SUBURBAN"})

    def test_dtc_count_land_and_ring_main(self):
        dtc = self.calc._dtc(1200, 250, 500, "METRO")
        self.assertTrue(dtc["needed"])
        self.assertEqual(dtc["dtcCount"], 3)
        self.assertEqual(dtc["landRequired"], 25 + 2 * 15)
        self.assertTrue(dtc["ringMainRequired"])
        self.assertFalse(self.calc._dtc(1200, 75, 500, "URBAN")["individualTransformerRequired"])

    def test_substation_bands_by_area_type(self):
        self.assertFalse(self.calc._substation(3300, "METRO")["needed"])

        urban = self.calc._substation(3300, "URBAN")
        self.assertTrue(urban["needed"])
        self.assertEqual(urban["substationType"], "33/11 kV or 22/11 kV Substation")
        self.assertEqual(urban["landRequired"], 3500)
        self.assertEqual([o["type"] for o in urban["landOptions"]],
                         ["SUBSTATION_33/11_OUTDOOR", "SUBSTATION_33/11_HYBRID"])

        metro = self.calc._substation(5000, "METRO")
        self.assertIn("LT Ring main network mandatory", metro["specialRequirements"])
        self.assertEqual(min(o["landSqm"] for o in metro["landOptions"]), 600)

        ehv = self.calc._substation(25000, "RURAL")
        self.assertEqual(ehv["substationType"], "EHV Substation")
        self.assertIsNone(ehv["landRequired"])
        self.assertEqual(ehv["landOptions"], [])

    def test_land_total_counts_needed_items_only(self):
        dtc = self.calc._dtc(1200, 250, 500, "METRO")
        land = self.calc._land(dtc, self.calc._substation(5000, "METRO"))
        self.assertEqual(land["total"], 55 + 3500)
        self.assertEqual([b["type"] for b in land["breakdown"]], ["DTC", "Substation"])

        quiet = self.calc._land(self.calc._dtc(40, 250, 500, "METRO"), self.calc._substation(40, "METRO"))
        self.assertEqual(quiet["total"], 0)

    def test_compliance_reports_lease_and_land(self):
        results, _ = self.calc.run({"areaType": "URBAN", "numberOfBuildings": 2})
        compliance = results["regulatoryCompliance"]
        self.assertEqual(compliance["lease"]["duration"], "99 years")
        self.assertEqual(compliance["lease"]["upfrontPayment"], "Rs. 99/-")
        self.assertEqual(compliance["land"]["unit"], "sq.m")
        self.assertIn("needed", compliance["substation"])
        json.dumps(results)


class PanelScheduleTests(unittest.TestCase):

    def setUp(self):
        self.calc = PanelScheduleCalculator(default_store())

    def _incoming(self, params):
        results, _ = self.calc.run(params)
        incoming = results["incomingDevice"]
        self.assertEqual(incoming["resolvedRatings"][incoming["governingCriteria"]], incoming["ratingA"])
        return incoming

    def test_design_current_governs_light_board(self):
        incoming = self._incoming({"circuits": [{"loadType": "lighting", "loadKW": 2}] * 3})
        self.assertEqual(incoming["governingCriteria"], "Design Current")
        self.assertEqual(incoming["ratingA"], 16)

    def test_outgoing_discrimination_governs(self):
        incoming = self._incoming({"circuits": [{"loadType": "power", "loadKW": 10, "phases": 1}]})
        self.assertEqual(incoming["governingCriteria"], "Outgoing Discrimination")
        self.assertEqual(incoming["ratingA"], 80)
        self.assertEqual(incoming["resolvedRatings"]["Design Current"], 25)

    def test_breaking_capacity_governs_high_fault_level(self):
        results, _ = self.calc.run({"faultLevelKA": 50,
                                    "circuits": [{"loadType": "lighting", "loadKW": 2}] * 3})
        incoming = results["incomingDevice"]
        self.assertEqual(incoming["governingCriteria"], "Breaking Capacity")
        self.assertEqual(incoming["ratingA"], 500)
        self.assertEqual(incoming["breakingCapacity"], "50kA")
        self.assertEqual(results["warnings"], [])

    def test_invalid_circuit_phases_rejected(self):
        with self.assertRaises(InvalidValueError) as ctx:
            self.calc.run({"circuits": [{"loadType": "power", "loadKW": 1, "phases": 2}]})
        self.assertEqual(ctx.exception.fields, ["circuits[0].phases"])


class RisingMainTests(unittest.TestCase):

    def setUp(self):
        self.calc = RisingMainCalculator(default_store())

    def test_cable_riser_governor_matches_selected_size(self):
        floors = [{"floor": n, "lightingKW": 10} for n in range(1, 50)]
        results, _ = self.calc.run({"riserType": "CABLE", "floorHeight": 3.0, "floors": floors})
        riser = results["riserSizing"]
        self.assertEqual(riser["resolvedSizes"][riser["governingCriteria"]], riser["selectedSize"])
        self.assertEqual(riser["governingCriteria"], "Voltage Drop")
        self.assertEqual(riser["selectedSize"], "2×95 sq mm XLPE Cu 4C")
        self.assertGreaterEqual(riser["ratingA"], riser["designCurrentA"])
        self.assertTrue(results["voltageDropAnalysis"]["compliant"])

    def test_section_currents_follow_supply_direction(self):
        floors = [{"floor": 1, "lightingKW": 10}, {"floor": 2, "lightingKW": 20}, {"floor": 3, "lightingKW": 30}]
        up, _ = self.calc.run({"floors": floors, "supplyDirection": "UP"})
        down, _ = self.calc.run({"floors": floors, "supplyDirection": "DOWN"})

        up_sections = {s["floor"]: s for s in up["cumulativeLoads"]}
        down_sections = {s["floor"]: s for s in down["cumulativeLoads"]}
        self.assertEqual(up_sections[1]["floorsServed"], 3)
        self.assertEqual(down_sections[3]["floorsServed"], 3)
        self.assertAlmostEqual(up_sections[1]["sectionLoadKW"], 45.9)
        self.assertAlmostEqual(up_sections[3]["sectionLoadKW"], 25.5)
        self.assertAlmostEqual(down_sections[1]["sectionLoadKW"], 8.5)
        self.assertEqual(up["summary"]["maxCurrentA"], down["summary"]["maxCurrentA"])

    def test_invalid_power_factor_rejected(self):
        with self.assertRaises(InvalidValueError):
            self.calc.run({"powerFactor": 0})


class PHEPumpTests(unittest.TestCase):

    def test_suction_lift_fails_npsh_check(self):
        calc = PHEPumpCalculator(default_store())
        flooded, _ = calc.run({})
        self.assertTrue(flooded["npshCheck"]["adequate"])

        lift, _ = calc.run({"staticSuctionHead": -7})
        self.assertFalse(lift["npshCheck"]["adequate"])
        self.assertLess(lift["npshCheck"]["npshAvailable"], 3.0 * 1.3)
        self.assertTrue(any("NPSH available" in w for w in lift["warnings"]))


class LightingDesignTests(unittest.TestCase):

    def setUp(self):
        self.calc = LightingDesignCalculator(default_store())

    def _fails(self, room):
        with self.assertRaises(ComputationError) as ctx:
            self.calc.run({"rooms": [dict(room, name="Lab")]})
        self.assertEqual(ctx.exception.calculation_type, "lighting_design")
        return str(ctx.exception)

    def test_work_plane_at_ceiling(self):
        self.assertIn("work plane", self._fails({"height": 0.8, "workPlaneHeight": 0.8}))

    def test_zero_dimensions(self):
        self.assertIn("dimensions", self._fails({"length": 0}))
        self.assertIn("dimensions", self._fails({"area": 0}))

    def test_maintenance_factor_out_of_range(self):
        self.assertIn("maintenance factor", self._fails({"maintenanceFactor": 1.2}))
        self.assertIn("maintenance factor", self._fails({"maintenanceFactor": 0}))


class FirePumpTests(unittest.TestCase):

    def setUp(self):
        self.calc = FirePumpCalculator(default_store())

    def test_low_rise_residential_needs_no_hydrant_pump(self):
        results, summary = self.calc.run({"buildingHeight": 12})
        self.assertFalse(results["hydrantSystem"]["required"])
        self.assertIsNone(results["sprinklerSystem"])
        self.assertEqual(summary["flowM3h"], 0)

    def test_tall_residential_adds_sprinklers(self):
        results, _ = self.calc.run({"buildingHeight": 70})
        self.assertEqual(results["buildingInfo"]["heightCategory"], "ABOVE_60M")
        self.assertEqual(results["hydrantSystem"]["pumpFlowLPM"], 2700)
        self.assertIsNotNone(results["sprinklerSystem"])
        self.assertGreater(results["hydrantSystem"]["totalHeadM"], 70)


if __name__ == "__main__":
    unittest.main()
