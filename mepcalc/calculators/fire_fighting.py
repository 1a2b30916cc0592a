"""
Fire Fighting System Design Calculator

Complete fire protection layout for a building per NBC 2016 Part 4:
- System applicability by height category
- Wet riser / dry riser / internal and yard hydrants
- Sprinkler system (IS 15105) and first-aid hose reels
- Fire water storage, extinguishers (IS 2190) and pressure zoning
"""

import math
import logging
from typing import Any, Dict, List, Optional

from ..engine import as_plain
from .base import CalculationType, Calculator, banded, flag, integer, number, rnd, text
from .hydraulics import GRAVITY, M_HEAD_PER_BAR, hazen_williams_loss

logger = logging.getLogger(__name__)

BAR_PER_M = 0.0981

HAZARD_ALIASES = {
    "LIGHT": "Light Hazard",
    "OH1": "Ordinary Hazard Group 1",
    "OH2": "Ordinary Hazard Group 2",
    "HIGH": "High Hazard",
}


class FireFightingCalculator(Calculator):
    """Fire fighting system layout and water storage."""

    calculation_type = CalculationType.FIRE_FIGHTING

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        height = number(params, "buildingHeight", 45, minimum=0)
        floors = integer(params, "numberOfFloors", 15, minimum=1)
        floor_height = number(params, "floorHeight", 3, minimum=0.1)
        building_type = text(params, "buildingType", "commercial")
        built_up = number(params, "totalBuiltUpArea", 10000, minimum=0)
        floor_area = number(params, "floorArea", 700, minimum=0)
        basements = integer(params, "basementLevels", 2, minimum=0)
        occupancy = text(params, "occupancyType", "Business")
        hazard_name = text(params, "sprinklerHazard", "Light Hazard")
        has_sprinkler = flag(params, "hasSprinkler", True)
        has_hose_reel = flag(params, "hasHoseReel", True)
        custom_storage = params.get("customWaterStorage")

        consts = self.table("fire_fighting_constants")
        category = banded(self.table("nbc_fire_categories"), height)["band"]
        nbc = self.table("nbc_fire_requirements")[category]
        warnings: List[str] = []

        sprinkler_required = bool(nbc["sprinkler"]) or has_sprinkler
        hose_reel_required = bool(nbc["hoseReel"]) or has_hose_reel

        wet_riser = self._wet_riser(height, floors, consts) if nbc["wetRiser"] else None
        dry_riser = self._dry_riser(floors) if nbc["dryRiser"] else None
        sprinkler = None
        if sprinkler_required:
            sprinkler = self._sprinkler(floors, floor_area, basements, hazard_name, warnings)
        hose_reel = self._hose_reel(floors, floor_height, consts) if hose_reel_required else None
        internal_hydrant = self._internal_hydrant(floors, height, consts) if nbc["internalHydrant"] else None
        yard_hydrant = self._yard_hydrant(built_up, consts) if nbc["yardHydrant"] else None

        storage = self._water_storage(nbc, wet_riser, sprinkler, hose_reel, custom_storage, consts)
        extinguishers = self._extinguishers(floors, floor_area, basements, consts)
        zoning = None
        if height > consts["tall_building_m"]:
            zoning = self._zoning(height, floors, floor_height, consts)
        piping = self._piping_schedule(wet_riser, sprinkler, hose_reel, floors, floor_height, basements, consts)

        if nbc.get("refugeArea"):
            warnings.append("Refuge areas required for buildings above 60m")
        if custom_storage not in (None, "") and storage["totalStorageM3"] < nbc["waterStorage"]:
            warnings.append(
                f"Custom storage {storage['totalStorageM3']} m³ is below NBC minimum {nbc['waterStorage']} m³"
            )

        systems = {
            "wetRiser": wet_riser is not None,
            "dryRiser": dry_riser is not None,
            "sprinkler": sprinkler is not None,
            "hoseReel": hose_reel is not None,
            "internalHydrant": internal_hydrant is not None,
            "yardHydrant": yard_hydrant is not None,
            "fireExtinguisher": True,
            "zoneValves": zoning is not None,
        }
        pump_kw = sum(s["pumpPowerKW"] for s in (wet_riser, sprinkler, hose_reel) if s)

        return {
            "inputParameters": {
                "buildingHeight": height,
                "numberOfFloors": floors,
                "floorHeight": floor_height,
                "buildingType": building_type,
                "totalBuiltUpArea": built_up,
                "floorArea": floor_area,
                "basementLevels": basements,
                "occupancyType": occupancy,
            },
            "nbcCategory": category,
            "nbcRequirements": as_plain(nbc),
            "wetRiser": wet_riser,
            "dryRiser": dry_riser,
            "sprinklerSystem": sprinkler,
            "hoseReel": hose_reel,
            "internalHydrant": internal_hydrant,
            "yardHydrant": yard_hydrant,
            "waterStorage": storage,
            "fireExtinguishers": extinguishers,
            "pressureZoning": zoning,
            "pipingSchedule": piping,
            "equipment": as_plain(self.table("hydrant_equipment")),
            "summary": {
                "systemsProvided": [name for name, present in systems.items() if present],
                "totalWaterStorageM3": storage["totalStorageM3"],
                "totalPumpPowerKW": rnd(pump_kw, 1),
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "systems": len(s.get("systemsProvided", [])),
            "waterStorageM3": s.get("totalWaterStorageM3"),
            "pumpPowerKW": s.get("totalPumpPowerKW"),
        }

    # -------------------------------------------------------------------------

    @staticmethod
    def _friction_bar(flow_lps: float, dia_mm: float, length_m: float, consts) -> float:
        loss_m = hazen_williams_loss(flow_lps * 60, dia_mm, consts["riser_c_factor"]) * length_m
        return loss_m * consts["fitting_length_factor"] / M_HEAD_PER_BAR

    @staticmethod
    def _pump_kw(flow_lps: float, pressure_bar: float, efficiency: float) -> float:
        head_m = pressure_bar / BAR_PER_M
        return flow_lps / 1000 * head_m * GRAVITY / efficiency

    def _wet_riser(self, height: float, floors: int, consts) -> Dict[str, Any]:
        pipe = banded(self.table("wet_riser_pipes"), height)
        simultaneous = 3 if height > consts["tall_building_m"] else 2
        flow_lps = consts["hydrant_flow_lps"] * simultaneous

        static = height * BAR_PER_M
        friction = self._friction_bar(flow_lps, pipe["diameter"], height, consts)
        residual = consts["hydrant_residual_bar"]
        pressure = static + friction + residual
        kw = self._pump_kw(flow_lps, pressure, consts["riser_pump_efficiency"])

        return {
            "riserDiameterMM": pipe["diameter"],
            "pipeMaterial": pipe["material"],
            "numberOfRisers": 2 if height > consts["twin_riser_above_m"] else 1,
            "landingValves": floors,
            "simultaneousOutlets": simultaneous,
            "designFlowLPS": rnd(flow_lps),
            "designFlowM3h": rnd(flow_lps * 3.6, 1),
            "staticPressureBar": rnd(static),
            "frictionLossBar": rnd(friction),
            "residualPressureBar": residual,
            "totalPumpPressureBar": rnd(pressure),
            "totalPumpHeadM": rnd(pressure / BAR_PER_M, 1),
            "pumpPowerKW": rnd(kw, 1),
            "pumpConfiguration": "Main electric + Diesel standby + Jockey",
        }

    @staticmethod
    def _dry_riser(floors: int) -> Dict[str, Any]:
        return {
            "riserDiameterMM": 100,
            "landingValves": math.ceil(floors / 2),
            "fireBrigadeInlet": "4-way inlet at ground level",
            "note": "Charged by fire brigade pumping appliance",
        }

    def _sprinkler(self, floors: int, floor_area: float, basements: int,
                   hazard_name: str, warnings: List[str]) -> Dict[str, Any]:
        classes = self.table("sprinkler_classes")
        hazard_name = HAZARD_ALIASES.get(hazard_name.upper(), hazard_name)
        if hazard_name not in classes:
            warnings.append(f"Unknown sprinkler hazard '{hazard_name}', Light Hazard assumed")
            hazard_name = "Light Hazard"
        hazard = classes[hazard_name]

        heads_per_floor = math.ceil(floor_area / hazard["maxCoverage"])
        protected_levels = floors + basements
        total_heads = heads_per_floor * protected_levels
        riser = banded(self.table("sprinkler_riser_pipes"), heads_per_floor, key="max_heads")

        design_heads = math.ceil(hazard["designArea"] / hazard["maxCoverage"])
        flow_per_head = hazard["kFactor"] * math.sqrt(hazard["minPressure"] * 10) / 1000
        design_flow = max(flow_per_head * design_heads,
                          hazard["designDensity"] * hazard["designArea"] / 60)
        pressure = hazard["minPressure"] + 2.0 + floors * 3 * BAR_PER_M
        kw = self._pump_kw(design_flow, pressure, 0.65)

        return {
            "hazardClass": hazard_name,
            "designDensity": hazard["designDensity"],
            "designArea": hazard["designArea"],
            "maxCoverageM2": hazard["maxCoverage"],
            "maxSpacingM": hazard["maxSpacing"],
            "kFactor": hazard["kFactor"],
            "headsPerFloor": heads_per_floor,
            "protectedLevels": protected_levels,
            "totalHeads": total_heads,
            "spareHeads": max(6, math.ceil(total_heads * 0.01)),
            "designHeads": design_heads,
            "flowPerHeadLPS": rnd(flow_per_head, 3),
            "designFlowLPS": rnd(design_flow),
            "designFlowM3h": rnd(design_flow * 3.6, 1),
            "riserDiameterMM": riser["diameter"],
            "pipeSizing": {
                "branchLines": as_plain(self.table("sprinkler_branch_sizes")),
                "crossMainMM": 65 if heads_per_floor <= 40 else 80 if heads_per_floor <= 80 else 100,
                "feedMainMM": 80 if heads_per_floor <= 60 else 100 if heads_per_floor <= 120 else 125,
            },
            "installationControlValves": math.ceil(protected_levels / 10) or 1,
            "totalPumpPressureBar": rnd(pressure),
            "pumpPowerKW": rnd(kw, 1),
            "examples": hazard["examples"],
        }

    def _hose_reel(self, floors: int, floor_height: float, consts) -> Dict[str, Any]:
        reel = self.table("hydrant_equipment")["hoseReel"]
        flow_lps = reel["flowRate"] * consts["hose_reel_simultaneous"]
        static = floors * floor_height * BAR_PER_M
        pressure = static + consts["hose_reel_friction_bar"] + reel["pressure"]
        kw = self._pump_kw(flow_lps, pressure, consts["hose_reel_pump_efficiency"])
        return {
            "reelsPerFloor": 1,
            "totalReels": floors,
            "hoseDiameterMM": reel["diameter"],
            "hoseLengthM": reel["length"],
            "riserDiameterMM": 50,
            "designFlowLPS": rnd(flow_lps),
            "totalPumpPressureBar": rnd(pressure),
            "pumpPowerKW": rnd(kw, 1),
        }

    @staticmethod
    def _internal_hydrant(floors: int, height: float, consts) -> Dict[str, Any]:
        simultaneous = 3 if height > consts["tall_building_m"] else 2
        return {
            "hydrantsPerFloor": 1,
            "totalHydrants": floors,
            "simultaneousOperation": simultaneous,
            "designFlowLPS": rnd(consts["hydrant_flow_lps"] * simultaneous),
            "hoseCabinets": floors,
        }

    @staticmethod
    def _yard_hydrant(built_up: float, consts) -> Dict[str, Any]:
        count = max(consts["yard_hydrant_min"], math.ceil(built_up / consts["yard_hydrant_area_m2"]))
        return {
            "numberOfHydrants": count,
            "type": "Double-headed stand post",
            "ringMainDiameterMM": 150,
            "maxSpacingM": 45,
        }

    @staticmethod
    def _water_storage(nbc, wet_riser: Optional[Dict], sprinkler: Optional[Dict],
                       hose_reel: Optional[Dict], custom, consts) -> Dict[str, Any]:
        hydrant_m3 = wet_riser["designFlowLPS"] * 3.6 if wet_riser else 0.0
        sprinkler_m3 = sprinkler["designFlowLPS"] * 3.6 if sprinkler else 0.0
        hose_m3 = consts["hose_reel_storage_lps"] * 3.6 if hose_reel else 0.0
        calculated = hydrant_m3 + sprinkler_m3 + hose_m3

        step = consts["storage_round_m3"]
        if custom not in (None, ""):
            total = number({"customWaterStorage": custom}, "customWaterStorage", minimum=0)
            basis = "Custom"
        else:
            total = max(nbc["waterStorage"], math.ceil(calculated / step) * step)
            basis = "NBC minimum" if total == nbc["waterStorage"] else "Calculated demand"

        return {
            "nbcMinimumM3": nbc["waterStorage"],
            "calculatedDemandM3": rnd(calculated, 1),
            "breakdown": {
                "hydrantM3": rnd(hydrant_m3, 1),
                "sprinklerM3": rnd(sprinkler_m3, 1),
                "hoseReelM3": rnd(hose_m3, 1),
            },
            "totalStorageM3": rnd(total, 1),
            "basis": basis,
            "compartments": 2,
            "tankType": "RCC underground with two compartments",
        }

    def _extinguishers(self, floors: int, floor_area: float, basements: int, consts) -> Dict[str, Any]:
        per_floor = max(consts["extinguisher_min_per_floor"],
                        math.ceil(floor_area / consts["extinguisher_area_m2"]))
        levels = floors + basements
        total = per_floor * levels
        schedule = [
            {
                "type": mix["type"],
                "quantity": math.ceil(total * mix["share"]),
                "placement": mix["placement"],
            }
            for mix in self.table("extinguisher_mix")
        ]
        return {
            "perFloor": per_floor,
            "levels": levels,
            "totalExtinguishers": total,
            "schedule": schedule,
            "maxTravelDistanceM": 15,
        }

    @staticmethod
    def _zoning(height: float, floors: int, floor_height: float, consts) -> Dict[str, Any]:
        floors_per_zone = max(1, math.floor(consts["max_zone_height_m"] / floor_height))
        zone_count = math.ceil(floors / floors_per_zone)
        zones = []
        for i in range(zone_count):
            start = i * floors_per_zone + 1
            end = min((i + 1) * floors_per_zone, floors)
            zones.append({
                "zone": i + 1,
                "floors": f"{start}-{end}",
                "prvSettingBar": max(0, 7 - 2 * i),
            })
        return {
            "floorsPerZone": floors_per_zone,
            "numberOfZones": zone_count,
            "zones": zones,
            "prvRequired": height > consts["twin_riser_above_m"],
        }

    @staticmethod
    def _piping_schedule(wet_riser, sprinkler, hose_reel, floors: int, floor_height: float,
                         basements: int, consts) -> List[Dict[str, Any]]:
        total_height = (floors + basements) * floor_height
        length = math.ceil(total_height * consts["pipe_length_allowance"])
        schedule = []
        if wet_riser:
            schedule.append({
                "system": "Wet Riser",
                "diameterMM": wet_riser["riserDiameterMM"],
                "material": wet_riser["pipeMaterial"],
                "lengthM": length * wet_riser["numberOfRisers"],
            })
        if sprinkler:
            schedule.append({
                "system": "Sprinkler Riser",
                "diameterMM": sprinkler["riserDiameterMM"],
                "material": "MS ERW IS 1239 Heavy",
                "lengthM": length,
            })
        if hose_reel:
            schedule.append({
                "system": "Hose Reel Riser",
                "diameterMM": hose_reel["riserDiameterMM"],
                "material": "GI IS 1239 Medium",
                "lengthM": length,
            })
        return schedule
