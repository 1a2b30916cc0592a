"""
Fire Pump Calculator

Sizes the fire pump set for a building per NBC 2016 Part 4:
hydrant (wet riser) pump, sprinkler pump, jockey pump, diesel standby,
fire water storage and pump room.
"""

import math
import logging
from typing import Any, Dict, List, Optional

from ..engine import select
from .base import CalculationType, Calculator, banded, flag, integer, number, rnd, text
from .hydraulics import (
    M_HEAD_PER_BAR,
    hazen_williams_loss,
    hydraulic_power_kw,
    pipe_velocity,
    size_pipe,
)

logger = logging.getLogger(__name__)


class FirePumpCalculator(Calculator):
    """Fire pump set, storage and pump room sizing."""

    calculation_type = CalculationType.FIRE_PUMP

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        building_type = text(params, "buildingType", "RESIDENTIAL")
        height = number(params, "buildingHeight", 30, minimum=0)
        buildings = integer(params, "numberOfBuildings", 1, minimum=1)
        floors = integer(params, "numberOfFloors", 10, minimum=0)
        has_sprinkler = flag(params, "hasSprinkler", False)
        floor_area = number(params, "totalFloorArea", 5000, minimum=0)
        pipe_type = text(params, "pipeType", "Black Steel")
        pipe_run = number(params, "longestPipeRun", 100, minimum=0)
        bends = integer(params, "numberOfBends", 10, minimum=0)
        tees = integer(params, "numberOfTees", 5, minimum=0)
        valves = integer(params, "numberOfValves", 4, minimum=0)
        hazard_class = text(params, "sprinklerHazardClass", "LIGHT").upper()
        head_count = integer(params, "numberOfSprinklerHeads", 0, minimum=0)

        consts = self.table("fire_pump_constants")
        band = banded(self.table("fire_height_bands"), height)["band"]
        occupancy = "COMMERCIAL" if "COMMERCIAL" in building_type.upper() else "RESIDENTIAL"
        demand = self.table("fire_water_demand")[occupancy][band]
        c_factor = self.lookup("hazen_williams_c", pipe_type, 120)

        warnings: List[str] = []
        sprinklers_needed = has_sprinkler or demand["sprinklerLPM"] > 0

        hydrant = self._hydrant_system(demand, height, c_factor, pipe_run, bends, tees, valves, consts)
        sprinkler = None
        if sprinklers_needed:
            sprinkler = self._sprinkler_system(hazard_class, floor_area, head_count, height,
                                               c_factor, pipe_run, consts)
        tank = self._tank(demand, buildings, consts)
        jockey = self._jockey(hydrant["systemPressureBar"], consts)
        diesel = self._diesel(hydrant["pumpFlowLPM"], hydrant["totalHeadM"], consts)
        room = self._pump_room(hydrant, sprinkler, diesel)

        for part in (hydrant, sprinkler, diesel):
            if part and part.get("warning"):
                warnings.append(part["warning"])

        sprinkler_kw = sprinkler["pumpPowerKW"] if sprinkler else 0

        return {
            "buildingInfo": {
                "buildingType": building_type,
                "buildingHeight": height,
                "heightCategory": band,
                "occupancyType": occupancy,
                "numberOfBuildings": buildings,
                "numberOfFloors": floors,
                "hasSprinkler": sprinklers_needed,
            },
            "nbcRequirements": dict(demand),
            "hydrantSystem": hydrant,
            "sprinklerSystem": sprinkler,
            "tankSizing": tank,
            "jockeyPump": jockey,
            "dieselPump": diesel,
            "pumpRoomSizing": room,
            "totalElectricalLoad": {
                "mainPumpKW": hydrant["pumpPowerKW"],
                "sprinklerPumpKW": sprinkler_kw,
                "jockeyPumpKW": jockey["powerKW"],
                "totalKW": rnd(hydrant["pumpPowerKW"] + sprinkler_kw + jockey["powerKW"], 1),
                "dieselPumpKW": diesel.get("ratedKW", 0),
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        hydrant = results.get("hydrantSystem") or {}
        return {
            "flowM3h": hydrant.get("pumpFlowM3h", 0),
            "headM": hydrant.get("totalHeadM", 0),
            "pumpPowerKW": (results.get("totalElectricalLoad") or {}).get("totalKW", 0),
        }

    # -------------------------------------------------------------------------

    def _pump_kw(self, calculated_kw: float, catalog_name: str):
        return select(self.catalog(catalog_name), calculated_kw)

    def _hydrant_system(self, demand, height, c_factor, pipe_run, bends, tees, valves, consts) -> Dict[str, Any]:
        flow_lpm = demand["hydrantLPM"]
        if flow_lpm <= 0:
            return {
                "required": False, "pumpFlowLPM": 0, "pumpFlowM3h": 0, "totalHeadM": 0,
                "pumpPowerKW": 0, "systemPressureBar": 0, "numberOfPumps": 0,
            }

        flow_m3s = flow_lpm / 60000
        pipe = size_pipe(flow_m3s, consts["hydrant_velocity"], self.catalog("fire_pipe_sizes"))
        dia = pipe.selected
        loss_per_m = hazen_williams_loss(flow_lpm, dia, c_factor)

        equiv_length = (bends * dia * consts["bend_equiv_factor"]
                        + tees * dia * consts["tee_equiv_factor"]
                        + valves * dia * consts["valve_equiv_factor"])
        friction = loss_per_m * (pipe_run + equiv_length)

        static = height + consts["tank_connection_head_m"]
        residual = consts["hydrant_residual_m"]
        head = static + friction + residual

        calc_kw = hydraulic_power_kw(flow_m3s, head, consts["pump_efficiency"])
        pump = self._pump_kw(calc_kw, "fire_pump_sizes_electric")

        result = {
            "required": True,
            "pumpFlowLPM": flow_lpm,
            "pumpFlowM3h": rnd(flow_lpm * 0.06, 1),
            "pipeSize": dia,
            "pipeVelocityMs": rnd(pipe_velocity(flow_m3s, dia)),
            "equivalentFittingLengthM": rnd(equiv_length, 1),
            "staticHeadM": round(static),
            "frictionLossM": rnd(friction, 1),
            "residualPressureM": residual,
            "totalHeadM": round(head),
            "systemPressureBar": rnd(head / M_HEAD_PER_BAR, 1),
            "pumpPowerKW": pump.selected,
            "calculatedPumpKW": rnd(calc_kw, 1),
            "pumpType": "Horizontal Split Case" if pump.selected > consts["split_case_above_kw"] else "End Suction",
            "numberOfPumps": 2,
            "configuration": "Main + Standby (Electric)",
        }
        if pump.exceeded_catalog:
            result["warning"] = "Hydrant duty exceeds largest standard pump; parallel pumps may be required"
        return result

    def _sprinkler_system(self, hazard_class, floor_area, head_count, height, c_factor, pipe_run, consts):
        classes = self.table("sprinkler_hazard_class")
        aliases = {"ORD1": "ORDINARY_1", "ORD2": "ORDINARY_2"}
        hazard_class = aliases.get(hazard_class, hazard_class)
        if hazard_class not in classes:
            hazard_class = "LIGHT"
        hazard = classes[hazard_class]

        heads = head_count if head_count > 0 else math.ceil(floor_area / hazard["maxSpacingM2"])
        operating = max(hazard["numberOfHeads"], min(heads, consts["sprinkler_max_design_heads"]))

        per_head = hazard["designDensity"] * hazard["maxSpacingM2"]
        flow_lpm = per_head * operating
        flow_m3s = flow_lpm / 60000

        pipe = size_pipe(flow_m3s, consts["sprinkler_velocity"], self.catalog("fire_pipe_sizes"))
        friction = hazen_williams_loss(flow_lpm, pipe.selected, c_factor) * (
            pipe_run + consts["sprinkler_fitting_allowance_m"])
        static = height + consts["sprinkler_static_allowance_m"]
        head = static + friction + consts["sprinkler_residual_m"]

        calc_kw = hydraulic_power_kw(flow_m3s, head, consts["pump_efficiency"])
        pump = self._pump_kw(calc_kw, "fire_pump_sizes_electric")

        result = {
            "hazardClass": hazard_class,
            "hazardDescription": hazard["description"],
            "designDensity": hazard["designDensity"],
            "operatingArea": hazard["operatingArea"],
            "totalHeads": heads,
            "operatingHeads": operating,
            "flowPerHeadLPM": rnd(per_head, 1),
            "totalFlowLPM": round(flow_lpm),
            "mainPipeSize": pipe.selected,
            "staticHeadM": round(static),
            "frictionLossM": rnd(friction, 1),
            "totalHeadM": round(head),
            "pumpPowerKW": pump.selected,
            "calculatedPumpKW": rnd(calc_kw, 1),
            "pumpType": "End Suction",
            "numberOfPumps": 2,
            "configuration": "Main + Standby",
        }
        if pump.exceeded_catalog:
            result["warning"] = "Sprinkler duty exceeds largest standard pump"
        return result

    def _tank(self, demand, buildings: int, consts) -> Dict[str, Any]:
        capacity = demand["tankLitres"]
        if buildings > 1:
            capacity = capacity * consts["multi_building_tank_factor"]

        volume = capacity / 1000
        depth = consts["tank_depth_m"]
        area = volume / depth
        side = math.ceil(math.sqrt(area))

        hydrant_share = consts["hydrant_tank_share"] if demand["sprinklerLPM"] > 0 else 1.0
        return {
            "totalCapacityLitres": round(capacity),
            "totalCapacityM3": rnd(volume, 1),
            "tankDepthM": depth,
            "tankAreaM2": round(area),
            "approxDimensions": f"{side}m × {side}m × {depth}m",
            "hydrantTankLitres": round(capacity * hydrant_share),
            "sprinklerTankLitres": round(capacity * (1 - hydrant_share)),
            "durationMinutes": demand["durationMin"],
            "numberOfBuildings": buildings,
            "tankType": "RCC Underground Reservoir" if capacity > 100000 else "RCC or MS Underground Tank",
        }

    def _jockey(self, system_bar: float, consts) -> Dict[str, Any]:
        pressure = system_bar + consts["jockey_pressure_margin_bar"]
        flow = consts["jockey_flow_lpm"]
        head = pressure * M_HEAD_PER_BAR
        calc_kw = hydraulic_power_kw(flow / 60000, head, consts["jockey_efficiency"])
        pump = select(self.catalog("fire_jockey_sizes"), calc_kw)
        return {
            "flowLPM": flow,
            "headM": round(head),
            "pressureBar": rnd(pressure, 1),
            "powerKW": pump.selected,
            "pumpType": "Vertical Multistage",
        }

    def _diesel(self, flow_lpm: float, head_m: float, consts) -> Dict[str, Any]:
        if flow_lpm <= 0:
            return {"required": False}
        calc_kw = hydraulic_power_kw(flow_lpm / 60000, head_m, consts["diesel_pump_efficiency"])
        pump = self._pump_kw(calc_kw, "fire_pump_sizes_diesel")
        fuel_lph = pump.selected * consts["diesel_fuel_l_per_kwh"]
        result = {
            "required": True,
            "flowLPM": flow_lpm,
            "headM": round(head_m),
            "ratedKW": pump.selected,
            "engineHP": round(pump.selected * consts["kw_to_hp"]),
            "fuelConsumptionLPH": rnd(fuel_lph, 1),
            "fuelTankLitres": round(fuel_lph * consts["diesel_run_hours"]),
            "startType": "Auto-start on pressure drop",
            "batteryType": "24V Lead-acid (dual bank)",
        }
        if pump.exceeded_catalog:
            result["warning"] = "Diesel duty exceeds largest standard engine"
        return result

    @staticmethod
    def _pump_room(hydrant, sprinkler: Optional[Dict[str, Any]], diesel) -> Dict[str, Any]:
        pumps = 1  # jockey
        if hydrant["required"]:
            pumps += hydrant["numberOfPumps"]
        if sprinkler:
            pumps += sprinkler["numberOfPumps"]
        if diesel.get("required"):
            pumps += 1

        length = max(6, 3 + pumps * 1.5)
        width = 5
        return {
            "totalPumps": pumps,
            "minLengthM": math.ceil(length),
            "minWidthM": width,
            "minHeightM": 3.5,
            "minAreaM2": math.ceil(length * width),
            "ventilationRequired": bool(diesel.get("required")),
            "drainageRequired": True,
            "controlPanelLocation": "Adjacent to pump room entrance",
        }
