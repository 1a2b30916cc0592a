"""
Rising Main Calculator

Floor-by-floor load aggregation for a rising main, bus riser or down take:
- Floor loads with floor diversity, section currents with building diversity
- Busbar trunking or parallel cable riser, governed by current capacity
  and cumulative voltage drop
- Tap-off and incoming protection, electrical shaft size
"""

import math
import logging
from typing import Any, Dict, List

from ..engine import Criterion, select, select_governing, select_where
from .base import (
    CalculationType, Calculator, banded, choice, integer, items, number, phase_count, power_factor, rnd, text,
)

logger = logging.getLogger(__name__)

CRITERION_CURRENT = "Current Carrying Capacity"
CRITERION_VOLTAGE_DROP = "Voltage Drop"

LOAD_FIELDS = ("lightingKW", "powerKW", "acKW", "commonAreaKW", "spareKW")


class RisingMainCalculator(Calculator):
    """Riser sizing with cumulative voltage drop."""

    calculation_type = CalculationType.RISING_MAIN

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        design_type = text(params, "designType", "RISING_MAIN").upper()
        riser_type = choice(params, "riserType", "BUSBAR", ("BUSBAR", "CABLE"), upper=True)
        voltage = number(params, "systemVoltage", 415, minimum=1)
        phases = phase_count(params)
        pf = power_factor(params)
        floor_count = integer(params, "numberOfFloors", 20, minimum=1)
        floor_height = number(params, "floorHeight", 3.0, minimum=0.1)
        building_type = text(params, "buildingType", "residential").lower()
        default_dir = "DOWN" if design_type == "DOWN_TAKE" else "UP"
        direction = choice(params, "supplyDirection", default_dir, ("UP", "DOWN"), upper=True)

        consts = self.table("riser_constants")
        warnings: List[str] = []

        floor_input = items(params, "floors")
        if not floor_input:
            floor_input = self._default_floors(floor_count, building_type)
        floors = [self._floor(f, i, voltage, phases, pf, floor_height, consts)
                  for i, f in enumerate(floor_input)]
        floor_count = len(floors)

        sections = self._sections(floors, direction, voltage, phases, pf)
        max_current = sections[0]["sectionCurrentA"] if sections else 0.0
        design_current = max_current * consts["design_margin"]

        options = self._options(riser_type, consts)
        riser, drops = self._size_riser(options, sections, design_current, voltage, pf, phases, consts, warnings)

        tap_offs = self._tap_offs(floors, consts)
        protection = self._protection(max_current, consts)
        total_height = sum(f["sectionLengthM"] for f in floors)

        return {
            "designInfo": {
                "designType": design_type,
                "riserType": riser_type,
                "systemVoltage": voltage,
                "phases": f"{phases} Phase + N + E",
                "powerFactor": pf,
                "buildingType": building_type,
                "numberOfFloors": floor_count,
                "floorHeight": floor_height,
                "totalHeight": rnd(total_height, 1),
                "supplyDirection": ("Down Take (Top to Bottom)" if direction == "DOWN"
                                    else "Rising Main (Bottom to Top)"),
            },
            "floors": floors,
            "cumulativeLoads": sorted(sections, key=lambda s: s["floor"]),
            "riserSizing": riser,
            "voltageDropAnalysis": drops,
            "tapOffs": tap_offs,
            "protection": protection,
            "shaftRequirement": self._shaft(riser),
            "summary": {
                "totalConnectedLoadKW": rnd(sum(f["connectedLoadKW"] for f in floors), 1),
                "totalDiversifiedLoadKW": sections[0]["sectionLoadKW"] if sections else 0,
                "maxCurrentA": rnd(max_current, 1),
                "riserSize": riser["selectedSize"],
                "maxVoltageDropPercent": drops["maxVoltageDrop"]["percent"],
                "maxVoltageDropFloor": drops["maxVoltageDrop"]["floor"],
                "compliant": drops["compliant"],
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "riserSize": s.get("riserSize"),
            "maxCurrentA": s.get("maxCurrentA"),
            "maxVdropPercent": s.get("maxVoltageDropPercent"),
        }

    # -------------------------------------------------------------------------

    def _default_floors(self, count: int, building_type: str) -> List[Dict[str, Any]]:
        loads = self.table("riser_default_floor_loads")
        template = loads.get(building_type, loads["commercial"])
        return [dict(template, floor=i, name=f"Floor {i}") for i in range(1, count + 1)]

    @staticmethod
    def _floor(floor: Dict[str, Any], index: int, voltage, phases, pf, floor_height, consts) -> Dict[str, Any]:
        prefix = f"floors[{index}]."
        level = integer(floor, "floor", index + 1, prefix=prefix)
        breakdown = {k: number(floor, k, 0, prefix=prefix, minimum=0) for k in LOAD_FIELDS}
        connected = sum(breakdown.values())
        diversified = connected * consts["floor_diversity"]
        if phases == 3:
            current = diversified * 1000 / (math.sqrt(3) * voltage * pf)
        else:
            current = diversified * 1000 / (voltage * pf)
        return {
            "floor": level,
            "name": floor.get("name") or f"Floor {level}",
            "loadBreakdown": breakdown,
            "connectedLoadKW": rnd(connected, 1),
            "diversifiedLoadKW": rnd(diversified, 1),
            "currentA": rnd(current, 1),
            "sectionLengthM": number(floor, "heightM", floor_height, prefix=prefix, minimum=0),
        }

    def _sections(self, floors, direction: str, voltage, phases, pf) -> List[Dict[str, Any]]:
        """
        Riser sections in supply order.

        The section feeding a floor carries that floor and every floor
        beyond it, diversified by the number of floors it serves.
        """
        ordered = sorted(floors, key=lambda f: f["floor"], reverse=direction == "DOWN")
        diversity = self.table("riser_building_diversity")
        n = len(ordered)

        sections = []
        distance = 0.0
        for i, floor in enumerate(ordered):
            downstream = ordered[i:]
            served = n - i
            connected = sum(f["diversifiedLoadKW"] for f in downstream)
            factor = banded(diversity, served, "max_floors")["factor"]
            load = connected * factor
            if phases == 3:
                current = load * 1000 / (math.sqrt(3) * voltage * pf)
            else:
                current = load * 1000 / (voltage * pf)
            distance += floor["sectionLengthM"]
            sections.append({
                "floor": floor["floor"],
                "floorsServed": served,
                "sectionLengthM": floor["sectionLengthM"],
                "distanceFromSupplyM": rnd(distance, 1),
                "cumulativeConnectedKW": rnd(connected, 1),
                "buildingDiversityFactor": factor,
                "sectionLoadKW": rnd(load, 1),
                "sectionCurrentA": rnd(current, 1),
            })
        return sections

    def _options(self, riser_type: str, consts) -> List[Dict[str, Any]]:
        """Riser alternatives in ascending capacity; impedances in ohm/m."""
        if riser_type == "BUSBAR":
            return [
                {
                    "label": bar["size"], "capacityA": bar["ratingA"], "runs": 1,
                    "r": bar["r"], "x": bar["x"], "ratingA": bar["ratingA"],
                }
                for bar in self.table("riser_busbars")
            ]

        options = []
        for runs in range(1, consts["max_parallel_cables"] + 1):
            for cable in self.table("riser_cables"):
                label = f"{runs}×" if runs > 1 else ""
                options.append({
                    "label": f"{label}{cable['sizeSqMM']} sq mm XLPE Cu 4C",
                    "capacityA": cable["cccA"] * runs,
                    "runs": runs,
                    "r": cable["r"] / 1000 / runs,
                    "x": cable["x"] / 1000 / runs,
                    "sizeSqMM": cable["sizeSqMM"],
                })
        options.sort(key=lambda o: (o["capacityA"], o["runs"]))
        return options

    @staticmethod
    def _drop_profile(option, sections, voltage, pf, phases) -> List[Dict[str, Any]]:
        sin_phi = math.sqrt(1 - pf * pf)
        k = math.sqrt(3) if phases == 3 else 2
        cumulative = 0.0
        profile = []
        for s in sections:
            vd = k * s["sectionCurrentA"] * s["sectionLengthM"] * (option["r"] * pf + option["x"] * sin_phi)
            cumulative += vd
            profile.append({
                "floor": s["floor"],
                "sectionCurrentA": s["sectionCurrentA"],
                "sectionVdropV": rnd(vd),
                "cumulativeVdropV": rnd(cumulative),
                "cumulativeVdropPercent": rnd(cumulative / voltage * 100),
                "voltageAtFloorV": rnd(voltage - cumulative, 1),
            })
        return profile

    def _size_riser(self, options, sections, design_current, voltage, pf, phases, consts, warnings):
        limit = consts["riser_vd_limit_percent"]
        indices = list(range(len(options)))

        def vd_percent(i: int) -> float:
            profile = self._drop_profile(options[i], sections, voltage, pf, phases)
            return profile[-1]["cumulativeVdropPercent"] if profile else 0.0

        def carries(i: int) -> bool:
            return options[i]["capacityA"] >= design_current

        # parallel cable options are not monotonic in impedance; the drop
        # criterion must also carry the design current
        governing = select_governing([
            Criterion(CRITERION_CURRENT, resolved=select_where(indices, carries)),
            Criterion(CRITERION_VOLTAGE_DROP,
                      resolved=select_where(indices, lambda i: carries(i) and vd_percent(i) <= limit)),
        ], indices)

        chosen = governing.selected_size
        governor = governing.governing_criterion
        if governing.exceeded_catalog:
            warnings.append("No standard riser meets both current and voltage drop limits; "
                            "split the riser or add a sub-main")

        option = options[chosen]
        profile = self._drop_profile(option, sections, voltage, pf, phases)
        for row in profile:
            row["compliant"] = row["cumulativeVdropPercent"] <= limit
        worst = max(profile, key=lambda r: r["cumulativeVdropPercent"], default=None)
        max_drop = {"percent": worst["cumulativeVdropPercent"], "floor": worst["floor"]} if worst else {
            "percent": 0, "floor": 0}

        max_current = sections[0]["sectionCurrentA"] if sections else 0.0
        riser = {
            "type": "BUSBAR" if "ratingA" in option else "CABLE",
            "selectedSize": option["label"],
            "ratingA": option["capacityA"],
            "numberOfCables": option["runs"],
            "designCurrentA": rnd(design_current, 1),
            "maxCurrentA": rnd(max_current, 1),
            "utilization": rnd(max_current / option["capacityA"] * 100, 1),
            "resistanceOhmPerM": option["r"],
            "reactanceOhmPerM": option["x"],
            "governingCriteria": governor,
            "resolvedSizes": {name: options[s.selected]["label"] for name, s in governing.resolved.items()},
        }
        if riser["type"] == "BUSBAR":
            riser.update({"construction": "Busbar Trunking System (Sandwich type)",
                          "ipRating": "IP54", "fireRating": "2 hours"})
        else:
            riser.update({"sizeSqMM": option["sizeSqMM"], "installation": "Cable tray in electrical shaft"})

        drops = {
            "results": sorted(profile, key=lambda r: r["floor"]),
            "maxVoltageDrop": max_drop,
            "compliant": max_drop["percent"] <= limit,
            "limit": f"{limit}%",
        }
        if not drops["compliant"]:
            warnings.append(f"Riser voltage drop {max_drop['percent']}% exceeds {limit}%")
        return riser, drops

    def _tap_offs(self, floors, consts) -> List[Dict[str, Any]]:
        ratings = self.catalog("riser_tap_off_ratings")
        out = []
        for f in floors:
            rating = select(ratings, f["currentA"] * consts["tap_off_factor"]).selected
            out.append({
                "floor": f["floor"],
                "loadCurrentA": f["currentA"],
                "device": "MCB TP" if rating <= 63 else "MCCB 4P",
                "ratingA": rating,
                "type": "Plug-in / Bolt-on",
            })
        return out

    def _protection(self, max_current: float, consts) -> Dict[str, Any]:
        rating = select(self.catalog("riser_incoming_ratings"), max_current * consts["incoming_factor"]).selected
        return {
            "incomingDevice": {
                "type": "ACB" if rating > 1600 else "MCCB",
                "ratingA": rating,
                "poles": 4,
                "breakingCapacity": "50kA" if rating > 800 else "36kA",
            },
            "earthFaultProtection": {
                "type": "Core Balance CT + Earth Fault Relay",
                "setting": "30% of rated current",
                "trippingTime": "0.1 seconds",
            },
        }

    @staticmethod
    def _shaft(riser: Dict[str, Any]) -> Dict[str, Any]:
        if riser["type"] == "BUSBAR":
            rating = riser["ratingA"]
            width = 300 if rating <= 800 else 400 if rating <= 1600 else 600
            depth = 200 if rating <= 800 else 300 if rating <= 1600 else 400
        else:
            width = max(300, riser["numberOfCables"] * 150 + 100)
            depth = 200
        return {
            "riserSpaceWidthMM": width,
            "riserSpaceDepthMM": depth,
            "minShaftWidthMM": width + 300,
            "minShaftDepthMM": depth + 750,
            "fireRating": "2 hours",
            "accessDoor": "At each floor",
            "ventilation": "Natural / Forced per IS 732",
        }
