"""
HVAC Load Calculator

Room-by-room cooling load (ASHRAE / IS 3103): envelope transmission,
glass solar gain, people, lighting, equipment and outdoor air, followed by
chiller plant (N+1), AHU and cooling tower sizing.
"""

import math
import logging
from typing import Any, Dict, List

from ..engine import select
from .base import CalculationType, Calculator, banded, choice, items, number, rnd, text

logger = logging.getLogger(__name__)

SEASONS = ("summer", "monsoon", "winter")


def humidity_ratio(dry_bulb: float, rh_percent: float, pressure_kpa: float = 101.325) -> float:
    """Moisture content (kg/kg dry air) from dry bulb (C) and relative humidity."""
    p_sat = 0.61094 * math.exp(17.625 * dry_bulb / (dry_bulb + 243.04))
    p_v = p_sat * rh_percent / 100
    return 0.622 * p_v / (pressure_kpa - p_v)


class HVACLoadCalculator(Calculator):
    """Cooling load with chiller, AHU and cooling tower sizing."""

    calculation_type = CalculationType.HVAC_LOAD

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        consts = self.table("hvac_constants")
        city = text(params, "city", "MUMBAI").upper()
        season = choice(params, "season", "summer", SEASONS)
        safety = number(params, "safetyFactor", consts["safety_factor"], minimum=0)
        duct_loss = number(params, "ductLossFactor", consts["duct_loss_factor"], minimum=0)
        diversity = number(params, "diversityFactor", consts["diversity_factor"], minimum=0)
        warnings: List[str] = []

        conditions = self.lookup("hvac_design_conditions", city)
        if conditions is None:
            warnings.append(f"No design conditions for {city}, DEFAULT used")
            conditions = self.lookup("hvac_design_conditions", "DEFAULT")
        outside = conditions.get(season, conditions["summer"])

        rooms = items(params, "rooms")
        if not rooms:
            rooms = [{"name": "Living Room", "spaceType": "RESIDENTIAL", "area": 20, "occupancy": 4}]

        results = [self._room(room, i, outside, season, consts) for i, room in enumerate(rooms)]

        sensible = sum(r["totalSensibleHeatGain"] for r in results)
        latent = sum(r["totalLatentHeatGain"] for r in results)
        ventilation = sum(r["ventilationLoad"] for r in results)
        subtotal = sensible + latent + ventilation
        grand = subtotal * safety * duct_loss
        grand_tr = grand / consts["watts_per_tr"]

        chiller = self._chiller(grand_tr * diversity, consts, warnings)
        ahu = self._ahu(results, consts)
        tower = self._cooling_tower(chiller["workingCapacityTR"], consts)
        total_power = chiller["powerBreakdown"]["totalPlantKW"] + ahu["fanPowerKW"] + tower["fanPowerKW"]

        return {
            "designConditions": {
                "city": city,
                "season": season,
                "outside": dict(outside),
                "safetyFactor": safety,
                "ductLossFactor": duct_loss,
                "diversityFactor": diversity,
            },
            "roomResults": results,
            "summary": {
                "totalSensibleHeatGain": round(sensible),
                "totalLatentHeatGain": round(latent),
                "totalVentilationLoad": round(ventilation),
                "subtotalLoad": round(subtotal),
                "grandTotalLoad": round(grand),
                "grandTotalBTU": round(grand * consts["btu_per_watt"]),
                "totalCoolingTR": rnd(grand_tr),
                "chillerCapacityTR": chiller["totalInstalledTR"],
                "totalPowerKW": rnd(total_power, 1),
            },
            "chillerSizing": chiller,
            "ahuSizing": ahu,
            "coolingTowerSizing": tower,
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "totalCoolingTR": s.get("totalCoolingTR"),
            "chillerCapacityTR": s.get("chillerCapacityTR"),
            "totalPowerKW": s.get("totalPowerKW"),
        }

    # -------------------------------------------------------------------------

    def _u(self, construction: str, fallback: str) -> float:
        value = self.lookup("hvac_u_values", construction)
        if value is None:
            value = self.lookup("hvac_u_values", fallback)
        return value

    def _room(self, room: Dict[str, Any], index: int, outside, season: str, consts) -> Dict[str, Any]:
        prefix = f"rooms[{index}]."
        name = room.get("name") or f"Room {index + 1}"
        space_type = text(room, "spaceType", "RESIDENTIAL", prefix=prefix).upper()
        area = number(room, "area", 0, prefix=prefix, minimum=0)
        occupancy = number(room, "occupancy", 0, prefix=prefix, minimum=0)
        roof_area = number(room, "roofArea", 0, prefix=prefix, minimum=0)
        floor_area = number(room, "floorArea", 0, prefix=prefix, minimum=0)

        indoor = self.lookup("hvac_indoor_conditions", space_type) or self.lookup("hvac_indoor_conditions", "RESIDENTIAL")
        delta_t = outside["db"] - indoor["db"]

        wall_gain = 0.0
        for j, wall in enumerate(items(room, "walls")):
            wp = f"{prefix}walls[{j}]."
            u = self._u(text(wall, "constructionType", consts["default_wall"], prefix=wp), consts["default_wall"])
            wall_gain += u * number(wall, "area", 0, prefix=wp, minimum=0) * delta_t

        glass_trans = glass_solar = 0.0
        for j, win in enumerate(items(room, "windows")):
            wp = f"{prefix}windows[{j}]."
            glass_area = number(win, "area", 0, prefix=wp, minimum=0)
            u = self._u(text(win, "glassType", consts["default_glass"], prefix=wp), consts["default_glass"])
            glass_trans += u * glass_area * delta_t
            orientation = text(win, "orientation", "N", prefix=wp).upper()
            gains = self.lookup("hvac_solar_gain", orientation)
            shgf = gains[season] if gains is not None else consts["default_solar_gain"]
            sc = number(win, "shadingCoeff", consts["window_shading_coefficient"], prefix=wp, minimum=0)
            shading = consts["shaded_fraction"] if win.get("shading") else 1.0
            glass_solar += shgf * glass_area * sc * shading

        roof_u = self._u(text(room, "roofType", consts["default_roof"], prefix=prefix), consts["default_roof"])
        roof_gain = roof_u * roof_area * (delta_t + consts["roof_sol_air_rise"]) if roof_area > 0 else 0.0
        floor_u = self._u(text(room, "floorType", consts["default_floor"], prefix=prefix), consts["default_floor"])
        floor_gain = floor_u * floor_area * delta_t * consts["floor_delta_fraction"] if floor_area > 0 else 0.0

        heat = self.lookup("hvac_occupancy_heat", space_type) or self.lookup("hvac_occupancy_heat", "RESIDENTIAL")
        people_sensible = occupancy * heat["sensible"]
        people_latent = occupancy * heat["latent"]

        lpd = number(room, "lightingDensity", self.lookup("hvac_lighting_density", space_type, 7.0),
                     prefix=prefix, minimum=0)
        epd = number(room, "equipmentDensity", self.lookup("hvac_equipment_density", space_type, 5.0),
                     prefix=prefix, minimum=0)
        lighting = lpd * area
        equipment = epd * area

        vent_rate = self.lookup("hvac_ventilation_rates", space_type, 7.5)
        fresh_lps = vent_rate * occupancy
        vent_sensible = consts["air_sensible_w_per_lps_k"] * fresh_lps * delta_t
        dw = (humidity_ratio(outside["db"], outside["rh"], consts["atmospheric_kpa"])
              - humidity_ratio(indoor["db"], indoor["rh"], consts["atmospheric_kpa"]))
        # Drier outdoor air adds no latent cooling load
        vent_latent = max(0.0, consts["air_latent_w_per_lps"] * fresh_lps * dw)
        vent_load = vent_sensible + vent_latent

        sensible = (wall_gain + glass_trans + glass_solar + roof_gain + floor_gain
                    + people_sensible + lighting + equipment)
        latent = people_latent
        total = sensible + latent + vent_load

        delta_f = consts["supply_air_delta_c"] * 1.8
        supply_cfm = max(0.0, sensible * consts["btu_per_watt"] / (1.08 * delta_f))

        return {
            "name": name,
            "spaceType": space_type,
            "area": area,
            "indoor": dict(indoor),
            "breakdown": {
                "wallTransmission": round(wall_gain),
                "glassTransmission": round(glass_trans),
                "glassSolar": round(glass_solar),
                "roofHeatGain": round(roof_gain),
                "floorHeatGain": round(floor_gain),
                "peopleSensible": round(people_sensible),
                "peopleLatent": round(people_latent),
                "lightingLoad": round(lighting),
                "equipmentLoad": round(equipment),
                "ventSensible": round(vent_sensible),
                "ventLatent": round(vent_latent),
            },
            "totalSensibleHeatGain": round(sensible),
            "totalLatentHeatGain": round(latent),
            "sensibleHeatRatio": rnd(sensible / (sensible + latent), 3) if sensible + latent > 0 else 0,
            "ventilationLoad": round(vent_load),
            "totalRoomLoad": round(total),
            "roomTR": rnd(total / consts["watts_per_tr"]),
            "supplyAirCFM": round(supply_cfm),
            "freshAirCFM": round(fresh_lps * 2.119),
        }

    def _chiller(self, required_tr: float, consts, warnings: List[str]) -> Dict[str, Any]:
        working = 1 if required_tr <= consts["single_chiller_max_tr"] else 2
        standby = 1 if working > 1 else 0
        pick = select(self.catalog("hvac_chiller_sizes"), required_tr / working)
        size = pick.selected
        if pick.exceeded_catalog:
            warnings.append(f"Chiller duty {required_tr / working:.0f} TR per machine exceeds the "
                            f"{size} TR maximum; add machines")
        kind = banded(self.table("hvac_chiller_types"), required_tr, "max_tr")

        capacity = size * working
        chiller_kw = capacity * consts["chiller_kw_per_tr"]
        primary_kw = capacity * consts["primary_pump_kw_per_tr"]
        secondary_kw = capacity * consts["secondary_pump_kw_per_tr"]
        return {
            "requiredTR": rnd(required_tr, 1),
            "numberOfChillers": working + standby,
            "configuration": f"{working}W + {standby}S" if standby else "1W",
            "selectedCapacityTR": size,
            "workingCapacityTR": capacity,
            "totalInstalledTR": size * (working + standby),
            "chillerType": kind["type"],
            "copEstimate": kind["cop"],
            "iplvEstimate": kind["iplv"],
            "powerBreakdown": {
                "chillerKW": round(chiller_kw),
                "primaryPumpKW": round(primary_kw),
                "secondaryPumpKW": round(secondary_kw),
                "totalPlantKW": round(chiller_kw + primary_kw + secondary_kw),
            },
        }

    def _ahu(self, rooms: List[Dict[str, Any]], consts) -> Dict[str, Any]:
        total_cfm = sum(r["supplyAirCFM"] for r in rooms)
        fresh_cfm = sum(r["freshAirCFM"] for r in rooms)
        count = math.ceil(total_cfm / consts["ahu_split_cfm"]) if total_cfm > consts["ahu_max_cfm"] else 1
        per_ahu = math.ceil(total_cfm / count)
        size = select(self.catalog("hvac_ahu_sizes"), per_ahu).selected
        return {
            "zones": [{"name": r["name"], "supplyAirCFM": r["supplyAirCFM"],
                       "freshAirCFM": r["freshAirCFM"], "loadTR": r["roomTR"]} for r in rooms],
            "totalSupplyAirCFM": total_cfm,
            "totalFreshAirCFM": fresh_cfm,
            "ahuCount": count,
            "ahuCapacityCFM": size,
            "fanPowerKW": rnd(size * consts["ahu_fan_kw_per_cfm"] * count, 1),
            "filterType": "Pre-filter (G4) + Fine filter (F7)",
        }

    @staticmethod
    def _cooling_tower(chiller_tr: float, consts) -> Dict[str, Any]:
        capacity = chiller_tr * consts["cooling_tower_factor"]
        flow_lpm = capacity * consts["cooling_tower_gpm_per_tr"] * consts["lpm_per_gpm"]
        return {
            "capacityTR": round(capacity),
            "waterFlowLPM": round(flow_lpm),
            "approachTemp": consts["cooling_tower_approach_c"],
            "rangeTemp": consts["cooling_tower_range_c"],
            "fanPowerKW": rnd(capacity * consts["cooling_tower_fan_kw_per_tr"], 1),
            "type": ("Induced Draft Cross-flow" if capacity > consts["crossflow_above_tr"]
                     else "Induced Draft Counter-flow"),
        }
