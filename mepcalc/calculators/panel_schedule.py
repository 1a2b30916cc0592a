"""
Panel Schedule Calculator

Circuit-wise load distribution for a distribution board:
- Circuit current, protective device and outgoing cable
- Phase balancing of single-phase circuits
- Diversity by load type, incoming device, busbar and panel size
"""

import math
import logging
from typing import Any, Dict, List

from ..engine import Criterion, select, select_governing, select_where
from .base import (
    CalculationType, Calculator, banded, flag, integer, items, number, phase_count, power_factor, rnd, text,
)

logger = logging.getLogger(__name__)

PHASES = ("R", "Y", "B")
LOAD_TYPES = ("lighting", "power", "socket", "ac", "motor", "spare")

CRITERION_DESIGN_CURRENT = "Design Current"
CRITERION_DISCRIMINATION = "Outgoing Discrimination"
CRITERION_BREAKING = "Breaking Capacity"


class PanelScheduleCalculator(Calculator):
    """Panel schedule with phase balance and incoming device sizing."""

    calculation_type = CalculationType.PANEL_SCHEDULE

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        panel_name = text(params, "panelName", "DB-01")
        panel_type = text(params, "panelType", "DB").upper()
        voltage = number(params, "voltage", 415, minimum=1)
        phases = phase_count(params)
        frequency = number(params, "frequency", 50, minimum=0)
        pf = power_factor(params)
        fault_ka = number(params, "faultLevelKA", 0, minimum=0)

        consts = self.table("panel_constants")
        panel_spec = self.lookup("panel_types", panel_type)
        warnings: List[str] = []
        if panel_spec is None:
            warnings.append(f"Unknown panel type '{panel_type}', treated as DB")
            panel_spec = self.lookup("panel_types", "DB")

        circuits = [
            self._circuit(c, i + 1, voltage, pf, consts)
            for i, c in enumerate(items(params, "circuits"))
        ]
        if len(circuits) > panel_spec["maxWays"]:
            warnings.append(
                f"{len(circuits)} circuits exceed the {panel_spec['maxWays']} ways of a {panel_type}"
            )

        if phases == 3:
            balance = self._balance_phases(circuits, pf, consts)
            if not balance["balanced"]:
                warnings.append(f"Phase imbalance {balance['imbalancePercent']}% exceeds "
                                f"{consts['imbalance_limit_percent']}%")
        else:
            balance = {"totalKW": rnd(sum(c["loadKW"] for c in circuits))}

        connected = sum(c["loadKW"] for c in circuits)
        diversified, diversity = self._diversified_load(circuits)
        if phases == 1:
            total_current = diversified * 1000 / (consts["single_phase_voltage"] * pf)
        else:
            total_current = diversified * 1000 / (math.sqrt(3) * voltage * pf)

        incoming = self._incoming_device(total_current, circuits, panel_type, fault_ka, consts, warnings)
        earth_bus = banded(self.table("panel_earth_bus"), incoming["ratingA"], "max_rating")["size"]
        busbar = self._busbar(incoming["ratingA"], earth_bus)

        return {
            "panelInfo": {
                "name": panel_name,
                "type": panel_type,
                "description": panel_spec["description"],
                "voltage": f"{voltage:g}V, {phases}Ph, {frequency:g}Hz",
                "enclosure": panel_spec["enclosure"],
            },
            "circuits": circuits,
            "phaseBalance": balance,
            "loadSummary": {
                "totalConnectedLoadKW": rnd(connected),
                "diversifiedLoadKW": rnd(diversified),
                "diversityFactor": rnd(diversified / connected) if connected > 0 else 0,
                "diversityByType": diversity,
                "totalCurrentA": rnd(total_current, 1),
                "totalKVA": rnd(diversified / pf, 1),
            },
            "incomingDevice": incoming,
            "busbar": busbar,
            "earthBus": earth_bus,
            "panelDimensions": self._dimensions(len(circuits), panel_type, incoming, consts),
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        loads = results.get("loadSummary", {})
        incoming = results.get("incomingDevice", {})
        return {
            "totalLoadKW": loads.get("totalConnectedLoadKW"),
            "diversifiedKW": loads.get("diversifiedLoadKW"),
            "incomingDevice": f"{incoming.get('ratingA')}A {incoming.get('device')}" if incoming else None,
        }

    # -------------------------------------------------------------------------

    def _circuit(self, circuit: Dict[str, Any], no: int, voltage: float, system_pf: float, consts) -> Dict[str, Any]:
        prefix = f"circuits[{no - 1}]."
        load_type = text(circuit, "loadType", "lighting", prefix=prefix).lower()
        assigned = circuit.get("assignedPhase")

        if flag(circuit, "isSpare", False) or load_type == "spare":
            return {
                "circuitNo": no,
                "name": f"SPARE {no}",
                "loadType": "spare",
                "loadKW": 0,
                "currentA": 0,
                "phases": 1,
                "protectionDevice": "MCB",
                "protectionRating": None,
                "cableSize": "-",
                "assignedPhase": assigned or "R",
                "isSpare": True,
            }

        if load_type not in LOAD_TYPES:
            load_type = "power"
        load_kw = number(circuit, "loadKW", 0, prefix=prefix, minimum=0)
        quantity = integer(circuit, "quantity", 1, prefix=prefix, minimum=1)
        phases = phase_count(circuit, default=1, prefix=prefix)
        default_pf = {"motor": consts["motor_pf"], "lighting": consts["lighting_pf"]}.get(load_type, system_pf)
        pf = power_factor(circuit, default=default_pf, prefix=prefix)
        has_starter = flag(circuit, "hasStarter", False)
        starter = text(circuit, "starterType", "DOL", prefix=prefix)

        total_kw = load_kw * quantity
        if phases == 1:
            current = total_kw * 1000 / (consts["single_phase_voltage"] * pf)
        else:
            current = total_kw * 1000 / (math.sqrt(3) * voltage * pf)

        design = current * consts["continuous_factor"]
        use_mccb = design > consts["mcb_limit_a"] or has_starter
        ratings = self.catalog("panel_mccb_ratings" if use_mccb else "panel_mcb_ratings")
        rating = select(ratings, design).selected
        if use_mccb:
            device = "MCCB"
        elif load_type == "motor":
            device = "MCB Type D"
        elif load_type == "lighting":
            device = "MCB Type B"
        else:
            device = "MCB Type C"

        starting = None
        if load_type == "motor":
            multiplier = self.lookup("panel_starting_multiplier", starter, 1.5) if has_starter else 1.0
            starting = rnd(current * multiplier, 1)

        return {
            "circuitNo": no,
            "name": circuit.get("name") or f"Circuit {no}",
            "loadType": load_type,
            "loadKW": rnd(total_kw),
            "quantity": quantity,
            "powerFactor": pf,
            "phases": phases,
            "currentA": rnd(current, 1),
            "designCurrentA": rnd(design, 1),
            "startingCurrentA": starting,
            "protectionDevice": device,
            "protectionRating": rating,
            "cableSize": self._cable_for(rating),
            "assignedPhase": assigned or ("RYB" if phases == 3 else None),
            "hasStarter": has_starter,
            "starterType": starter if has_starter else None,
            "isSpare": False,
        }

    def _cable_for(self, rating: float) -> str:
        key = select(self.catalog("panel_cable_for_rating"), rating).selected
        return self.lookup("panel_cable_for_rating", key)

    @staticmethod
    def _balance_phases(circuits: List[Dict[str, Any]], pf: float, consts) -> Dict[str, Any]:
        loads = {p: 0.0 for p in PHASES}
        counts = {p: 0 for p in PHASES}

        for c in circuits:
            if c["isSpare"] or c["phases"] != 3:
                continue
            for p in PHASES:
                loads[p] += c["loadKW"] / 3
                counts[p] += 1

        for c in circuits:
            if c["isSpare"] or c["phases"] != 1:
                continue
            phase = c["assignedPhase"]
            if phase not in PHASES:
                # least loaded phase, R before Y before B on ties
                phase = min(PHASES, key=lambda p: loads[p])
                c["assignedPhase"] = phase
            loads[phase] += c["loadKW"]
            counts[phase] += 1

        avg = sum(loads.values()) / 3
        imbalance = max(abs(loads[p] - avg) for p in PHASES) / avg * 100 if avg > 0 else 0.0
        limit = consts["imbalance_limit_percent"]
        volts = consts["single_phase_voltage"]

        out: Dict[str, Any] = {
            p: {
                "loadKW": rnd(loads[p]),
                "currentA": rnd(loads[p] * 1000 / (volts * pf), 1),
                "circuits": counts[p],
            }
            for p in PHASES
        }
        out.update({
            "balanced": imbalance <= limit,
            "imbalancePercent": rnd(imbalance, 1),
            "recommendation": (f"Re-distribute circuits to achieve <{limit}% imbalance"
                               if imbalance > limit else "Within acceptable limits"),
        })
        return out

    def _diversified_load(self, circuits: List[Dict[str, Any]]):
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for c in circuits:
            if not c["isSpare"]:
                grouped.setdefault(c["loadType"], []).append(c)

        table = self.table("panel_diversity")
        total = 0.0
        by_type = {}
        for load_type, group in grouped.items():
            bands = table.get(load_type, table["power"])
            factor = banded(bands, len(group), "max_count")["factor"]
            kw = sum(c["loadKW"] for c in group)
            total += kw * factor
            by_type[load_type] = {"circuits": len(group), "connectedKW": rnd(kw), "factor": factor}
        return total, by_type

    def _breaking_capacity(self, rating: float) -> float:
        return banded(self.table("panel_breaking_capacity"), rating, "max_rating")["ka"]

    def _incoming_device(self, total_current, circuits, panel_type, fault_ka, consts, warnings) -> Dict[str, Any]:
        design = total_current * consts["continuous_factor"]
        if panel_type == "PCC":
            catalog = self.catalog("panel_acb_ratings")
        else:
            catalog = tuple(sorted(set(self.catalog("panel_mccb_ratings")) | set(self.catalog("panel_acb_ratings"))))

        outgoing = [c["protectionRating"] for c in circuits if not c["isSpare"]]
        criteria = [Criterion(CRITERION_DESIGN_CURRENT, required=design)]
        if outgoing:
            criteria.append(Criterion(CRITERION_DISCRIMINATION, required=max(outgoing)))
        if fault_ka > 0:
            criteria.append(Criterion(
                CRITERION_BREAKING,
                resolved=select_where(catalog, lambda r: self._breaking_capacity(r) >= fault_ka),
            ))

        governing = select_governing(criteria, catalog)
        rating = governing.selected_size
        if governing.exceeded_catalog:
            warnings.append(f"Incoming requirement exceeds the largest {rating}A frame")
        if fault_ka > self._breaking_capacity(rating):
            warnings.append(f"Fault level {fault_ka} kA exceeds the breaking capacity of the selected frame")

        acb = rating > consts["acb_above_a"] or panel_type == "PCC"
        return {
            "device": "ACB" if acb else "MCCB",
            "ratingA": rating,
            "designCurrentA": rnd(design, 1),
            "poles": 4,
            "breakingCapacity": f"{self._breaking_capacity(rating)}kA",
            "governingCriteria": governing.governing_criterion,
            "resolvedRatings": {name: s.selected for name, s in governing.resolved.items()},
        }

    def _busbar(self, incoming_rating: float, earth_bus: str) -> Dict[str, Any]:
        bar = select_where(self.table("panel_busbars"), lambda b: b["ratingA"] >= incoming_rating).selected
        return {
            "mainBus": {"size": bar["size"], "material": "Copper", "rating": f"{bar['cccA']}A"},
            "neutralBus": {"size": bar["size"], "material": "Copper", "note": "Same as phase bus"},
            "earthBus": {"size": earth_bus, "material": "Copper", "note": "IS 3043, at least 50% of phase bus"},
        }

    def _dimensions(self, circuit_count: int, panel_type: str, incoming: Dict[str, Any], consts) -> Dict[str, Any]:
        incoming_mm = 400 if incoming["device"] == "ACB" else 200
        needed = max(600, incoming_mm + circuit_count * consts["circuit_row_mm"]
                     + consts["spare_space_mm"] + consts["wiring_space_mm"])
        height = select(self.catalog("panel_standard_heights"), needed).selected

        if panel_type in ("MCC", "PCC"):
            width = 800
        else:
            width = 600 if incoming["ratingA"] > 400 else 400

        return {
            "heightMM": height,
            "widthMM": width,
            "depthMM": 300 if incoming["ratingA"] > 400 else 200,
            "ipRating": "IP54" if panel_type == "MCC" else "IP42",
            "material": "CRCA Sheet (2mm)",
            "color": "RAL 7032 (Pebble Grey)",
            "mounting": "Floor Standing" if height > 1200 else "Wall Mounted",
        }
