"""
Ventilation & Pressurization Calculator

Mechanical ventilation by air change rate (NBC 2016 / IS 3103), staircase
and lobby pressurization (IS 5765 / BS EN 12101-6) and smoke extraction
(NFPA 92 axisymmetric plume). Each zone is one of:

- VENTILATION: ACH airflow, ducted fans or jet fans, CO sensors for car parks
- PRESSURIZATION: leakage through closed doors plus open-door airflow
- SMOKE_EXTRACTION: plume mass flow, at least 6 ACH, smoke zoning
"""

import math
import logging
from typing import Any, Dict, List, Tuple

from ..engine import select, select_where
from ..errors import ComputationError
from .base import CalculationType, Calculator, banded, choice, flag, integer, items, number, rnd, text

logger = logging.getLogger(__name__)

ZONE_TYPES = ("VENTILATION", "PRESSURIZATION", "SMOKE_EXTRACTION")
PRESSURIZATION_TYPES = ("staircase", "fire_lift_lobby", "lift_shaft")

APP_GENERAL = "general"
APP_PRESSURIZATION = "pressurization"
APP_SMOKE = "smoke_extraction"


class VentilationCalculator(Calculator):
    """Zone ventilation, pressurization and smoke extraction airflows and fans."""

    calculation_type = CalculationType.VENTILATION

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        consts = self.table("ventilation_constants")
        zones = items(params, "zones")
        if not zones:
            zones = [{"name": "Basement Parking", "type": "VENTILATION"}]
        warnings: List[str] = []

        results = []
        for i, zone in enumerate(zones):
            prefix = f"zones[{i}]."
            kind = choice(zone, "type", "VENTILATION", ZONE_TYPES, prefix=prefix, upper=True)
            name = zone.get("name") or f"Zone {i + 1}"
            if kind == "PRESSURIZATION":
                res = self._pressurization(zone, name, prefix, consts, warnings)
            elif kind == "SMOKE_EXTRACTION":
                res = self._smoke_extraction(zone, name, prefix, consts, warnings)
            else:
                res = self._ventilation(zone, name, prefix, consts, warnings)
            results.append(res)

        supply = sum(r["supplyCFM"] for r in results)
        exhaust = sum(r["exhaustCFM"] for r in results)
        power = sum(r["totalFanPowerKW"] for r in results)
        logger.debug(f"Ventilation: {len(results)} zones, {power:.1f} kW fan power")

        return {
            "zoneResults": results,
            "summary": {
                "totalZones": len(results),
                "totalSupplyCFM": round(supply),
                "totalExhaustCFM": round(exhaust),
                "totalFanPowerKW": rnd(power, 1),
                "totalFanPowerHP": rnd(power * consts["hp_per_kw"], 1),
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "totalSupplyCFM": s.get("totalSupplyCFM"),
            "totalExhaustCFM": s.get("totalExhaustCFM"),
            "totalFanPowerKW": s.get("totalFanPowerKW"),
        }

    # -------------------------------------------------------------------------
    # Zone types
    # -------------------------------------------------------------------------

    def _ventilation(self, zone, name, prefix, consts, warnings: List[str]) -> Dict[str, Any]:
        space_type = text(zone, "spaceType", "Basement Parking", prefix=prefix)
        length = number(zone, "length", 50, prefix=prefix, minimum=0)
        width = number(zone, "width", 30, prefix=prefix, minimum=0)
        height = number(zone, "height", 3.0, prefix=prefix, minimum=0)
        jet_fans = flag(zone, "useJetFans", False)
        duct_length = number(zone, "ductLengthM", 50, prefix=prefix, minimum=0)
        bends = integer(zone, "numberOfBends", 6, prefix=prefix, minimum=0)
        static_override = number(zone, "fanStaticPressurePa", 0, prefix=prefix, minimum=0)

        spec = self.lookup("ventilation_ach", space_type)
        if spec is None:
            warnings.append(f"{name}: unknown space type '{space_type}', Basement Parking rates used")
            spec = self.lookup("ventilation_ach", "Basement Parking")

        area = length * width
        volume = area * height
        flow_m3h = volume * spec["ach"]
        flow_cfm = flow_m3h / consts["m3h_per_cfm"]
        flow_m3s = flow_m3h / 3600

        duct = None
        if jet_fans:
            fan = self._jet_fans(area, height, consts)
        else:
            duct = self._duct(flow_m3s, consts)
            if flow_m3s > 0 and not duct["velocityCompliant"]:
                warnings.append(f"{name}: duct velocity {duct['actualVelocityMs']} m/s outside "
                                f"{consts['duct_velocity_min']}-{consts['duct_velocity_max']} m/s")
            static = static_override or self._static_pressure(duct_length, bends, consts)
            fan = self._fan(flow_cfm, static, APP_GENERAL, spec["exhaustOnly"], consts, warnings)

        sensors = None
        if "parking" in space_type.lower():
            sensors = self._co_sensors(area)

        return {
            "name": name,
            "type": "VENTILATION",
            "spaceType": space_type,
            "dimensions": {"length": length, "width": width, "height": height,
                           "area": rnd(area), "volume": rnd(volume)},
            "requirements": {
                "ach": spec["ach"],
                "exhaustOnly": spec["exhaustOnly"],
                "freshAirPercent": spec["freshAirPercent"],
            },
            "airflow": {
                "volumeFlowM3h": round(flow_m3h),
                "volumeFlowCFM": round(flow_cfm),
                "volumeFlowM3s": rnd(flow_m3s),
            },
            "supplyCFM": 0 if spec["exhaustOnly"] else round(flow_cfm * consts["supply_fraction"]),
            "exhaustCFM": round(flow_cfm),
            "ductSizing": duct,
            "fanSelection": fan,
            "totalFanPowerKW": fan["totalPowerKW"],
            "coSensorLayout": sensors,
            "useJetFans": jet_fans,
        }

    def _pressurization(self, zone, name, prefix, consts, warnings: List[str]) -> Dict[str, Any]:
        ptype = choice(zone, "pressurizationType", "staircase", PRESSURIZATION_TYPES, prefix=prefix)
        floors = integer(zone, "numberOfFloors", 20, prefix=prefix, minimum=1)
        floor_height = number(zone, "floorHeight", 3.0, prefix=prefix, minimum=0)
        doors = integer(zone, "numberOfDoors", floors + 1, prefix=prefix, minimum=1)
        door_type = text(zone, "doorType", "Single leaf door (rated)", prefix=prefix)
        stair_area = number(zone, "staircaseArea", 12, prefix=prefix, minimum=0)
        open_doors = integer(zone, "numberOfSimultaneousOpenDoors", consts["simultaneous_open_doors"],
                             prefix=prefix, minimum=0)
        duct_length = number(zone, "ductLengthM", floors * floor_height + consts["duct_allowance_m"],
                             prefix=prefix, minimum=0)

        if open_doors > doors:
            raise ComputationError(f"{name}: {open_doors} open doors but only {doors} doors in total")

        standard = self.lookup("pressurization_standards", ptype)
        leakage_area = standard["leakageArea"].get(door_type)
        if leakage_area is None:
            warnings.append(f"{name}: no leakage area for '{door_type}' in {ptype}, 0.01 m² used")
            leakage_area = 0.01

        delta_p = standard["minPressurePa"]
        closed = doors - open_doors
        # Q = Cd * A * sqrt(2 dP / rho)
        leak_velocity = math.sqrt(2 * delta_p / consts["air_density"])
        leakage = closed * consts["discharge_coefficient"] * leakage_area * leak_velocity

        door_areas = self.table("pressurization_door_areas")
        door_area = door_areas["double"] if "double" in door_type.lower() else door_areas["single"]
        open_flow = open_doors * door_area * consts["open_door_velocity"]

        total_m3s = leakage + open_flow
        total_cfm = total_m3s * consts["cfm_per_m3s"]

        shaft_area = stair_area * consts["shaft_area_fraction"]
        shaft_velocity = total_m3s / shaft_area if shaft_area > 0 else 0.0

        static = delta_p + duct_length * consts["pressurization_duct_pa_per_m"] + consts["pressurization_grille_pa"]
        fan = self._fan(total_cfm, static, APP_PRESSURIZATION, False, consts, warnings)

        # F = dP * A / 2 + closer force
        force = delta_p * door_area / 2 + consts["door_closer_force_n"]
        force_ok = force <= consts["max_door_force_n"]
        if not force_ok:
            warnings.append(f"{name}: door opening force {force:.0f} N exceeds {consts['max_door_force_n']} N; "
                            "pressure relief damper required")

        return {
            "name": name,
            "type": "PRESSURIZATION",
            "pressurizationType": ptype,
            "parameters": {
                "numberOfFloors": floors,
                "floorHeight": floor_height,
                "totalDoors": doors,
                "doorType": door_type,
                "simultaneousOpenDoors": open_doors,
                "designPressurePa": delta_p,
            },
            "leakageCalculation": {
                "leakagePerDoorM2": leakage_area,
                "closedDoors": closed,
                "leakageThroughClosedDoorsM3s": rnd(leakage, 3),
                "airThroughOpenDoorsM3s": rnd(open_flow, 3),
            },
            "airflow": {
                "totalM3s": rnd(total_m3s),
                "totalCFM": round(total_cfm),
                "totalM3h": round(total_m3s * 3600),
            },
            "shaft": {"areaM2": rnd(shaft_area), "velocityMs": rnd(shaft_velocity)},
            "supplyCFM": round(total_cfm),
            "exhaustCFM": 0,
            "fanSelection": fan,
            "totalFanPowerKW": fan["totalPowerKW"],
            "doorForceCheck": {
                "maxForceN": consts["max_door_force_n"],
                "calculatedForceN": round(force),
                "compliant": force_ok,
            },
        }

    def _smoke_extraction(self, zone, name, prefix, consts, warnings: List[str]) -> Dict[str, Any]:
        length = number(zone, "length", 50, prefix=prefix, minimum=0)
        width = number(zone, "width", 30, prefix=prefix, minimum=0)
        height = number(zone, "height", 3.0, prefix=prefix, minimum=0)
        fire_kw = number(zone, "fireSize", 3000, prefix=prefix, minimum=0)
        clear_height = number(zone, "smokeLayerHeight", 2.0, prefix=prefix, minimum=0)

        if clear_height >= height:
            raise ComputationError(f"{name}: smoke layer height {clear_height}m must be below the ceiling ({height}m)")

        area = length * width
        max_zone = consts["smoke_zone_max_m2"]
        zone_area = number(zone, "smokeZoneArea", min(area, max_zone), prefix=prefix, minimum=0)

        fire_diameter = math.sqrt(4 * fire_kw / (consts["fire_heat_release_per_m2"] * math.pi))
        convective = fire_kw * consts["smoke_convective_fraction"]
        # m = 0.071 Qc^(1/3) z^(5/3) + 0.0018 Qc  (kg/s)
        mass_rate = 0.071 * convective ** (1 / 3) * clear_height ** (5 / 3) + 0.0018 * convective
        ambient = consts["smoke_ambient_k"]
        smoke_temp = ambient + (convective / (mass_rate * consts["smoke_air_cp"]) if mass_rate > 0 else 0.0)
        smoke_m3s = mass_rate / consts["air_density"] * smoke_temp / ambient

        ach_m3s = area * height * consts["smoke_min_ach"] / 3600
        design_m3s = max(smoke_m3s, ach_m3s)
        design_cfm = design_m3s * consts["cfm_per_m3s"]

        fan = self._fan(design_cfm, consts["smoke_system_pa"], APP_SMOKE, True, consts, warnings)

        zones = max(1, math.ceil(area / max_zone))
        curtain = (zones - 1) * width
        if zone_area > max_zone:
            warnings.append(f"{name}: smoke zone {zone_area:.0f} m² exceeds {max_zone} m²")

        return {
            "name": name,
            "type": "SMOKE_EXTRACTION",
            "designFire": {
                "fireSizeKW": fire_kw,
                "convectiveKW": round(convective),
                "fireDiameterM": rnd(fire_diameter),
                "clearHeightM": clear_height,
                "smokeLayerDepthM": rnd(height - clear_height),
            },
            "smokeProduction": {
                "smokeRateKgS": rnd(mass_rate, 3),
                "smokeTempK": round(smoke_temp),
                "smokeTempC": round(smoke_temp - 273),
                "smokeFlowM3s": rnd(smoke_m3s),
                "minFlowByACHM3s": rnd(ach_m3s),
            },
            "airflow": {
                "designFlowM3s": rnd(design_m3s),
                "designFlowCFM": round(design_cfm),
                "governedBy": "Plume" if smoke_m3s >= ach_m3s else "Minimum ACH",
            },
            "supplyCFM": round(design_cfm * consts["smoke_makeup_fraction"]),
            "exhaustCFM": round(design_cfm),
            "fanSelection": fan,
            "totalFanPowerKW": fan["totalPowerKW"],
            "smokeZoning": {
                "totalArea": rnd(area),
                "designZoneArea": rnd(zone_area),
                "maxZoneArea": max_zone,
                "numberOfZones": zones,
                "smokeCurtainLengthM": round(curtain),
                "smokeCurtainDropM": rnd(max(consts["smoke_min_curtain_drop_m"], height - clear_height)),
            },
            "fanRating": "300°C for 2 hours (BS EN 12101-3)",
        }

    # -------------------------------------------------------------------------
    # Equipment
    # -------------------------------------------------------------------------

    def _duct_candidates(self) -> List[Tuple[int, int]]:
        heights = self.catalog("ventilation_duct_heights")
        return [(w, h) for w in self.catalog("ventilation_duct_widths") for h in heights if h <= w]

    def _duct(self, flow_m3s: float, consts) -> Dict[str, Any]:
        required = flow_m3s / consts["duct_velocity"]
        pick = select_where(self._duct_candidates(), lambda wh: wh[0] * wh[1] / 1e6 >= required)
        width, height = pick.selected
        if flow_m3s <= 0:
            width, height = consts["duct_fallback_mm"]

        area = width * height / 1e6
        velocity = flow_m3s / area
        eq_dia = 1.3 * (width * height) ** 0.625 / (width + height) ** 0.25
        return {
            "requiredAreaM2": rnd(required, 4),
            "selectedSize": f"{width}mm × {height}mm",
            "selectedWidthMM": width,
            "selectedHeightMM": height,
            "actualAreaM2": rnd(area, 4),
            "actualVelocityMs": rnd(velocity, 1),
            "equivalentDiaMM": round(eq_dia),
            "velocityCompliant": consts["duct_velocity_min"] <= velocity <= consts["duct_velocity_max"],
            "exceededCatalog": pick.exceeded_catalog,
            "material": "GI Sheet (24 gauge up to 750mm, 22 gauge above)",
        }

    @staticmethod
    def _static_pressure(duct_length: float, bends: int, consts) -> float:
        return round(duct_length * consts["duct_friction_pa_per_m"] + bends * consts["bend_loss_pa"]
                     + consts["grille_loss_pa"] + consts["filter_loss_pa"])

    def _fan_type(self, cfm: float, static_pa: float, application: str, consts) -> str:
        if application == APP_SMOKE:
            return "Smoke Extraction (rated 300°C/2h)"
        if application == APP_PRESSURIZATION:
            if static_pa > consts["backward_curved_above_pa"]:
                return "Centrifugal (backward curved)"
            return "Centrifugal (forward curved)"
        return "Axial Flow" if cfm > consts["axial_above_cfm"] else "Mixed Flow"

    def _fan(self, cfm, static_pa, application, exhaust, consts, warnings: List[str]) -> Dict[str, Any]:
        fan_type = self._fan_type(cfm, static_pa, application, consts)
        spec = self.lookup("ventilation_fan_types", fan_type)
        low, high = spec["efficiency"]
        efficiency = (low + high) / 2

        flow_m3s = cfm / consts["cfm_per_m3s"]
        # P = Q * dP / eta
        power_kw = flow_m3s * static_pa / (efficiency * 1000)
        motor = select(self.catalog("ventilation_motor_sizes"), power_kw)
        if motor.exceeded_catalog:
            warnings.append(f"{fan_type}: {power_kw:.1f} kW exceeds the largest standard motor; split the duty")
        if static_pa > spec["maxStaticPa"]:
            warnings.append(f"{fan_type}: {static_pa:.0f} Pa exceeds its {spec['maxStaticPa']} Pa range")

        # Life safety fans run duty + standby
        fans = 2 if application in (APP_SMOKE, APP_PRESSURIZATION) else 1
        return {
            "fanType": fan_type,
            "application": "Exhaust" if exhaust else "Supply",
            "flowCFM": round(cfm),
            "staticPressurePa": static_pa,
            "efficiency": rnd(efficiency),
            "calculatedPowerKW": rnd(power_kw),
            "motorPowerKW": motor.selected,
            "numberOfFans": fans,
            "configuration": "1W + 1S" if fans > 1 else "Single",
            "totalPowerKW": rnd(motor.selected * fans, 1),
        }

    def _jet_fans(self, area: float, height: float, consts) -> Dict[str, Any]:
        coverage = consts["jet_fan_coverage_m2"]
        count = math.ceil(area / coverage)
        fan = banded(self.table("jet_fans"), height, "max_height_m")
        return {
            "fanType": "Jet Fan",
            "application": "Car park ventilation (ductless)",
            "numberOfFans": count,
            "fanDiameter": fan["diameterMM"],
            "motorPowerKW": fan["motorKW"],
            "totalPowerKW": rnd(fan["motorKW"] * count, 1),
            "thrust": fan["thrust"],
            "reversible": True,
            "spacing": f"Approx {round(math.sqrt(coverage))}m grid",
            "coSensorControlled": True,
        }

    def _co_sensors(self, area: float) -> Dict[str, Any]:
        co = self.table("co_sensor")
        spacing = co["spacingM"]
        count = max(co["minPerZone"], math.ceil(area / (spacing * spacing)))
        return {
            "numberOfSensors": count,
            "sensorSpacing": f"{spacing}m grid",
            "mountHeight": f"{co['mountHeightM']}m from floor",
            "alarmLevels": {
                "normal": f"<= {co['normalPpm']} ppm: fans at low speed",
                "level1": f"{co['level1Ppm']} ppm: fans at medium speed",
                "level2": f"{co['level2Ppm']} ppm: fans at full speed",
                "level3": f"{co['level3Ppm']} ppm: alarm and evacuation",
            },
            "sensorType": "Electrochemical CO sensor (0-500 ppm)",
            "cabling": "2-core shielded cable to BMS panel",
        }
