"""
Cable Selection Calculator

Sizes an LV power cable by three independent criteria and selects the
most restrictive:
- Current carrying capacity after derating (ambient, grouping,
  installation, soil)
- Voltage drop over the run length
- Short circuit withstand (only when a fault level is given)

Also reports cable tray fill for the selected cable.
"""

import math
import logging
from typing import Any, Dict, List, Optional

from ..engine import Criterion, FactorSpec, compose, select, select_governing, select_where
from ..engine.derating import EXACT
from .base import CalculationType, Calculator, choice, integer, number, phase_count, power_factor, rnd, text

logger = logging.getLogger(__name__)

CRITERION_CURRENT = "Current Carrying Capacity"
CRITERION_VOLTAGE_DROP = "Voltage Drop"
CRITERION_SHORT_CIRCUIT = "Short Circuit Withstand"

BURIED = "Direct buried"


def load_current(load_kw: float, voltage: float, pf: float, phases: int) -> float:
    """Line current (A) for a load in kW."""
    if phases == 3:
        return (load_kw * 1000) / (math.sqrt(3) * voltage * pf)
    return (load_kw * 1000) / (voltage * pf)


class CableSelectionCalculator(Calculator):
    """LV cable sizing by current, voltage drop and short circuit."""

    calculation_type = CalculationType.CABLE_SELECTION

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        voltage = number(params, "voltage", 415, minimum=1)
        phases = phase_count(params)
        load_kw = number(params, "loadKW", 10, minimum=0)
        pf = power_factor(params)
        length = number(params, "cableLength", 50, minimum=0)
        material = choice(params, "conductorMaterial", "Copper", ("Copper", "Aluminium"))
        insulation = choice(params, "insulationType", "XLPE", ("XLPE", "PVC"), upper=True)
        installation = text(params, "installationMethod", "Trefoil (touching) in air")
        ambient = number(params, "ambientTemp", 40)
        circuits = integer(params, "numberOfCircuits", 1, minimum=1)
        soil = number(params, "soilResistivity", 1.5, minimum=0)
        max_vd_pct = number(params, "maxVoltageDropPercent", 2.5, minimum=0)
        fault_ka = number(params, "faultLevel", 0, minimum=0)
        fault_s = number(params, "faultDuration", 1.0, minimum=0)

        warnings: List[str] = []
        current = load_current(load_kw, voltage, pf, phases)

        # 1. Derating
        derating = compose(self.store, [
            FactorSpec("ambient", f"cable_derating_ambient_{insulation.lower()}", ambient),
            FactorSpec("grouping", "cable_derating_grouping", circuits),
            FactorSpec("installation", "cable_derating_installation", installation, mode=EXACT),
            FactorSpec("soil", "cable_derating_soil", soil, applies=installation == BURIED),
        ])
        combined = round(derating.combined, 3)

        sizes = self.catalog("cable_sizes")
        ccc_table = self._ccc_table(material, insulation)
        vd_table = self.table("cable_voltage_drop_mv")

        # 2. Independent criteria
        by_current = self._size_by_current(current, combined, sizes, ccc_table)
        by_vd = self._size_by_voltage_drop(current, length, voltage, max_vd_pct, sizes, vd_table)
        by_sc = self._size_by_short_circuit(fault_ka, fault_s, material, insulation, sizes) if fault_ka > 0 else None

        criteria = [
            Criterion(CRITERION_CURRENT, resolved=by_current["selection"]),
            Criterion(CRITERION_VOLTAGE_DROP, resolved=by_vd["selection"]),
        ]
        if by_sc:
            criteria.append(Criterion(CRITERION_SHORT_CIRCUIT, resolved=by_sc["selection"]))
        governing = select_governing(criteria, sizes)
        final = governing.selected_size

        for part in (by_current, by_vd, by_sc):
            if part and part.get("warning"):
                warnings.append(part["warning"])

        # 3. Final cable checks
        vd_factor = self._vd_factor(vd_table, final)
        actual_vd = vd_factor * current * length / 1000
        actual_vd_pct = actual_vd / voltage * 100
        vd_ok = actual_vd_pct <= max_vd_pct
        if not vd_ok:
            warnings.append(
                f"Voltage drop {actual_vd_pct:.2f}% exceeds {max_vd_pct}% limit on largest cable"
            )

        ccc = ccc_table.get(final, 0)
        tray = self._tray_fill(self.lookup("cable_outer_diameter", final, 30), circuits)
        if not tray["compliant"]:
            warnings.append(tray["recommendation"])

        cores = "3.5C" if phases == 3 else "2C"

        return {
            "inputParameters": {
                "voltage": voltage, "phases": phases, "loadKW": load_kw,
                "powerFactor": pf, "cableLength": length,
                "conductorMaterial": material, "insulationType": insulation,
                "installationMethod": installation, "ambientTemp": ambient,
                "numberOfCircuits": circuits,
            },
            "loadCurrent": rnd(current, 1),
            "deratingFactors": derating.to_dict(),
            "sizingByCurrent": _public(by_current),
            "sizingByVoltageDrop": _public(by_vd),
            "sizingByShortCircuit": _public(by_sc) if by_sc else None,
            "selectedCable": {
                "size": final,
                "description": f"{cores} × {final} sq.mm {insulation} {material}",
                "governingCriteria": governing.governing_criterion,
                "actualVoltageDrop": rnd(actual_vd),
                "actualVoltageDropPercent": rnd(actual_vd_pct),
                "voltageDropCompliant": vd_ok,
                "cccRating": ccc,
                "deRatedCCC": rnd(ccc * combined, 1),
            },
            "governing": governing.to_dict(),
            "cableTrayFill": tray,
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        cable = results.get("selectedCable", {})
        return {
            "selectedCable": cable.get("size"),
            "currentA": results.get("loadCurrent"),
            "voltageDropPercent": cable.get("actualVoltageDropPercent"),
        }

    # -------------------------------------------------------------------------

    def _ccc_table(self, material: str, insulation: str):
        name = f"cable_ccc_{insulation.lower()}_{material.lower()}"
        if not self.store.has(name):
            logger.debug(f"No CCC table {name}, using XLPE copper ratings")
            name = "cable_ccc_xlpe_copper"
        return self.table(name)

    def _size_by_current(self, current: float, combined: float, sizes, ccc_table) -> Dict[str, Any]:
        required = current / combined
        selection = select_where(sizes, lambda s: ccc_table.get(s, 0) >= required)
        size = selection.selected
        result = {
            "selection": selection,
            "requiredCCC": round(required),
            "selectedSize": size,
            "cccRating": ccc_table.get(size, 0),
            "deRatedCCC": rnd(ccc_table.get(size, 0) * combined, 1),
        }
        if selection.exceeded_catalog:
            result["warning"] = "Parallel cables may be required"
        return result

    def _size_by_voltage_drop(self, current: float, length: float, voltage: float,
                              max_pct: float, sizes, vd_table) -> Dict[str, Any]:
        max_vd = voltage * max_pct / 100
        sized = [s for s in sizes if s in vd_table]
        selection = select_where(sized, lambda s: vd_table[s] * current * length / 1000 <= max_vd)
        size = selection.selected
        vd = vd_table[size] * current * length / 1000
        result = {
            "selection": selection,
            "maxAllowableVD": rnd(max_vd),
            "selectedSize": size,
            "voltageDrop": rnd(vd),
            "voltageDropPercent": rnd(vd / voltage * 100),
        }
        if selection.exceeded_catalog:
            result["warning"] = "Parallel cables or higher voltage may be required"
        return result

    def _size_by_short_circuit(self, fault_ka: float, duration: float, material: str,
                               insulation: str, sizes) -> Dict[str, Any]:
        k = self.lookup("cable_short_circuit_k", f"{insulation} {material}", 143)
        required_area = fault_ka * 1000 * math.sqrt(duration) / k
        selection = select(sizes, required_area)
        result = {
            "selection": selection,
            "faultLevelKA": fault_ka,
            "faultDuration": duration,
            "kFactor": k,
            "requiredArea": rnd(required_area, 1),
            "selectedSize": selection.selected,
        }
        if selection.exceeded_catalog:
            result["warning"] = "Fault level exceeds withstand of largest cable"
        return result

    def _vd_factor(self, vd_table, size) -> float:
        if size in vd_table:
            return vd_table[size]
        return self.store.nearest_value("cable_voltage_drop_mv", size)

    def _tray_fill(self, cable_od: float, circuits: int) -> Dict[str, Any]:
        tray = self.table("cable_tray")
        depth = tray["depth_mm"]
        max_fill = tray["max_fill_percent"]
        cable_area = math.pi * (cable_od / 2) ** 2 * circuits

        selection = select_where(tray["widths"], lambda w: cable_area / (w * depth) * 100 <= max_fill)
        width = selection.selected
        fill = cable_area / (width * depth) * 100
        result = {
            "cableOD": cable_od,
            "numberOfCables": circuits,
            "totalCableArea": round(cable_area),
            "trayWidth": width,
            "trayDepth": depth,
            "trayArea": width * depth,
            "fillPercent": rnd(fill, 1),
            "compliant": not selection.exceeded_catalog,
        }
        if selection.exceeded_catalog:
            result["recommendation"] = "Use multiple cable trays or larger tray size"
        return result


def _public(part: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop the internal Selection object before the dict goes into results."""
    if part is None:
        return None
    out = {k: v for k, v in part.items() if k != "selection"}
    out["exceededCatalog"] = part["selection"].exceeded_catalog
    return out
