"""
Plumbing Fixture Unit Calculator

Water supply sizing by the fixture unit method (IS 2065): fixture units
per floor, Hunter's curve peak flow, riser and branch sizes, hot water
storage and heater.
"""

import math
import logging
from typing import Any, Dict, List, Sequence

from ..engine import interpolate, select, select_where
from .base import CalculationType, Calculator, choice, flag, integer, items, number, rnd, text

logger = logging.getLogger(__name__)

OCCUPANCIES = ("PRIVATE", "PUBLIC")


def hunter_flow(curve: Sequence, fixture_units: float) -> float:
    """Probable peak flow (L/s) for a fixture unit total; no fixtures, no flow."""
    if fixture_units <= 0:
        return 0.0
    return round(interpolate(curve, fixture_units), 3)


class PlumbingFixtureCalculator(Calculator):
    """Fixture unit demand and water supply pipe sizing."""

    calculation_type = CalculationType.PLUMBING_FIXTURE

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        project_type = text(params, "projectType", "RESIDENTIAL").upper()
        use_type = choice(params, "useType", "PRIVATE", OCCUPANCIES, upper=True)
        pipe_material = text(params, "pipeMaterial", "CPVC")
        height = number(params, "buildingHeight", 30, minimum=0)
        risers = integer(params, "numberOfRisers", 2, minimum=1)
        hot_water = flag(params, "hotWaterRequired", True)

        curve = self.table("hunters_curve")
        warnings: List[str] = []

        floors = items(params, "floors")
        if not floors:
            floors = [{"name": "All Floors", "fixtures": items(params, "fixtures")}]
        analysis = self._analyze(floors, use_type, warnings)

        demand = {}
        for key, fu in (("coldWater", analysis["totalColdFU"]),
                        ("hotWater", analysis["totalHotFU"]),
                        ("total", analysis["totalFU"])):
            lps = hunter_flow(curve, fu)
            demand[key] = {"fixtureUnits": fu, "flowLPS": lps, "flowLPM": rnd(lps * 60, 1)}
        total_lps = demand["total"]["flowLPS"]
        nominal = self.table("plumbing_constants")["nominal_fu_flow_lps"]
        demand.update({
            "totalFlowLPS": total_lps,
            "totalFlowLPM": rnd(total_lps * 60, 1),
            "simultaneityFactor": rnd(total_lps / (analysis["totalFU"] * nominal), 3) if analysis["totalFU"] > 0 else 0,
        })

        riser = self._riser(total_lps, risers, pipe_material, warnings)
        branches = [self._branch(f, curve, pipe_material) for f in analysis["floors"]]
        hot = self._hot_water(analysis["totalHotFU"], curve, project_type) if hot_water else None

        return {
            "projectInfo": {
                "projectType": project_type,
                "useType": use_type,
                "pipeMaterial": pipe_material,
                "numberOfRisers": risers,
            },
            "fixtureAnalysis": analysis,
            "simultaneousDemand": demand,
            "riserSizing": riser,
            "branchSizing": branches,
            "hotWaterSystem": hot,
            "pipingMaterialSummary": self._materials(riser, branches, height),
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "totalFixtureUnits": results.get("fixtureAnalysis", {}).get("totalFU"),
            "peakFlowLPS": results.get("simultaneousDemand", {}).get("totalFlowLPS"),
            "riserSize": results.get("riserSizing", {}).get("riserSize"),
        }

    # -------------------------------------------------------------------------

    def _analyze(self, floors: List[Dict[str, Any]], use_type: str, warnings: List[str]) -> Dict[str, Any]:
        totals = {"cold": 0.0, "hot": 0.0, "total": 0.0, "count": 0}
        details = []

        for i, floor in enumerate(floors):
            f_cold = f_hot = f_total = 0.0
            f_count = 0
            breakdown = []
            for j, fixture in enumerate(items(floor, "fixtures")):
                prefix = f"floors[{i}].fixtures[{j}]."
                ftype = text(fixture, "type", prefix=prefix)
                count = integer(fixture, "count", 1, prefix=prefix, minimum=0)
                occupancy = choice(fixture, "occupancy", use_type, OCCUPANCIES, prefix=prefix, upper=True)
                spec = self._fixture(ftype, occupancy, warnings)

                cold, hot, total = spec["cold"] * count, spec["hot"] * count, spec["total"] * count
                f_cold += cold
                f_hot += hot
                f_total += total
                f_count += count
                breakdown.append({
                    "type": ftype,
                    "occupancy": occupancy,
                    "count": count,
                    "unitColdFU": spec["cold"],
                    "unitHotFU": spec["hot"],
                    "totalColdFU": cold,
                    "totalHotFU": hot,
                    "totalFU": total,
                    "minPipeMM": spec["minPipeMM"],
                })

            totals["cold"] += f_cold
            totals["hot"] += f_hot
            totals["total"] += f_total
            totals["count"] += f_count
            details.append({
                "name": floor.get("name") or f"Floor {i + 1}",
                "fixtureCount": f_count,
                "coldFU": f_cold,
                "hotFU": f_hot,
                "totalFU": f_total,
                "minPipeMM": max((b["minPipeMM"] for b in breakdown), default=15),
                "fixtures": breakdown,
            })

        return {
            "floors": details,
            "totalColdFU": totals["cold"],
            "totalHotFU": totals["hot"],
            "totalFU": totals["total"],
            "totalFixtureCount": totals["count"],
        }

    def _fixture(self, ftype: str, occupancy: str, warnings: List[str]):
        table = "fixture_units_public" if occupancy == "PUBLIC" else "fixture_units_private"
        spec = self.lookup(table, ftype)
        if spec is None:
            msg = f"Unknown fixture '{ftype}' ({occupancy.lower()}), 2 FU assumed"
            if msg not in warnings:
                warnings.append(msg)
            spec = self.table("fixture_unknown")
        return spec

    def _pipe_for(self, flow_lps: float):
        capacity = self.table("plumbing_pipe_capacity")
        return select_where(self.catalog("plumbing_pipe_capacity"), lambda d: flow_lps <= capacity[d]["max"])

    def _riser(self, total_lps: float, risers: int, material: str, warnings: List[str]) -> Dict[str, Any]:
        consts = self.table("plumbing_constants")
        per_riser = total_lps / risers
        pipe = self._pipe_for(per_riser)
        size = pipe.selected
        area = math.pi * (size / 2000) ** 2
        velocity = per_riser / 1000 / area
        compliant = consts["min_velocity"] <= velocity <= consts["max_velocity"]

        if pipe.exceeded_catalog:
            warnings.append(f"Riser flow {per_riser:.2f} L/s exceeds {size}mm capacity; add risers")
        elif per_riser > 0 and not compliant:
            warnings.append(
                f"Riser velocity {velocity:.2f} m/s outside {consts['min_velocity']}-{consts['max_velocity']} m/s"
            )

        return {
            "numberOfRisers": risers,
            "flowPerRiserLPS": rnd(per_riser),
            "riserSize": size,
            "velocityMs": rnd(velocity),
            "material": material,
            "velocityCompliant": compliant,
        }

    def _branch(self, floor: Dict[str, Any], curve, material: str) -> Dict[str, Any]:
        flow = hunter_flow(curve, floor["totalFU"])
        size = max(self._pipe_for(flow).selected, floor["minPipeMM"])
        return {
            "floorName": floor["name"],
            "fixtureUnits": floor["totalFU"],
            "flowLPS": flow,
            "branchPipeSize": size,
            "material": material,
        }

    def _hot_water(self, hot_fu: float, curve, project_type: str) -> Dict[str, Any]:
        consts = self.table("plumbing_constants")
        peak_lps = hunter_flow(curve, hot_fu)
        peak_lph = peak_lps * 3600
        rise = consts["temperature_rise_c"]

        storage = peak_lph * consts["peak_hour_storage_fraction"]
        heater_kw = storage / consts["heater_recovery_lph_per_kw"]
        solar_fraction = (consts["solar_fraction_residential"] if project_type == "RESIDENTIAL"
                          else consts["solar_fraction_other"])
        collector = storage * 4.18 * rise / (consts["solar_kwh_per_m2_day"] * 1000
                                             * consts["solar_collector_efficiency"])
        tank = select(self.catalog("hot_water_storage_sizes"), storage)

        circulation = {"required": False}
        if peak_lph > consts["circulation_above_lph"]:
            circulation = {"required": True, "flowLPM": round(peak_lph / 60), "powerKW": consts["circulation_pump_kw"]}

        return {
            "hotWaterFU": hot_fu,
            "peakFlowLPS": peak_lps,
            "peakFlowLPH": round(peak_lph),
            "temperatureRise": rise,
            "storageVolumeL": round(storage),
            "selectedStorageL": round(storage) if tank.exceeded_catalog else tank.selected,
            "heaterPowerKW": rnd(heater_kw, 1),
            "solarOption": {
                "solarFraction": solar_fraction,
                "collectorAreaM2": rnd(collector, 1),
                "electricBackupKW": rnd(heater_kw * (1 - solar_fraction), 1),
            },
            "circulationPump": circulation,
        }

    def _materials(self, riser: Dict[str, Any], branches: List[Dict[str, Any]], height: float) -> Dict[str, Any]:
        per_floor = self.table("plumbing_constants")["branch_length_per_floor_m"]
        riser_length = height * riser["numberOfRisers"]
        branch_length = per_floor * len(branches)
        return {
            "riserPipe": {"size": riser["riserSize"], "material": riser["material"], "totalLengthM": round(riser_length)},
            "branchPipes": [{"size": b["branchPipeSize"], "material": b["material"]} for b in branches],
            "estimatedTotalLengthM": round(riser_length + branch_length),
            "insulationRequired": True,
            "insulationMaterial": "Nitrile rubber (19mm thick) for hot water lines",
        }
