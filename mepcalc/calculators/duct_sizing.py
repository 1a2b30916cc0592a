"""
Duct Sizing Calculator

Equal friction duct sizing for a parent-linked network of sections:
- Section size (rectangular or circular) from flow and velocity limit
- Straight and fitting losses per section
- Critical path through the network and fan static pressure
- Sheet metal / insulation schedule
"""

import math
import logging
from typing import Any, Dict, List, Optional

from ..engine import Segment, analyze_paths, select
from .base import CalculationType, Calculator, choice, items, number, rnd, text

logger = logging.getLogger(__name__)

SYSTEM_TYPES = ("SUPPLY", "RETURN", "EXHAUST", "FRESH_AIR")
SHAPES = ("RECTANGULAR", "CIRCULAR")
DEFAULT_APPLICATION = "Main Duct (commercial)"


class DuctSizingCalculator(Calculator):
    """Equal friction duct sizing with critical path fan static."""

    calculation_type = CalculationType.DUCT_SIZING

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        material = text(params, "material", "GI Sheet")
        materials = self.table("duct_materials")
        if material not in materials:
            logger.debug(f"Unknown duct material {material}, using GI Sheet")
            material = "GI Sheet"
        system_type = choice(params, "systemType", "SUPPLY", SYSTEM_TYPES, upper=True)
        pressure_class = choice(params, "pressureClass", "LOW", ("LOW", "MEDIUM", "HIGH"), upper=True)
        friction_rate = number(params, "frictionRate", self.lookup("duct_friction_rate", pressure_class), minimum=0)
        default_shape = choice(params, "ductShape", "RECTANGULAR", SHAPES, upper=True)

        sections = items(params, "sections") or items(params, "segments")
        warnings: List[str] = []

        results = []
        for i, section in enumerate(sections):
            res = self._section(section, i, material, friction_rate, default_shape)
            results.append(res)
            if not res["velocityCompliant"]:
                warnings.append(
                    f"Section {res['id']}: velocity {res['actualVelocity']} m/s exceeds "
                    f"{res['maxAllowedVelocity']} m/s"
                )
            if res.get("warning"):
                warnings.append(f"Section {res['id']}: {res['warning']}")

        network = analyze_paths(
            Segment(r["id"], r["totalPressureDropPa"], r["parentId"]) for r in results
        )
        fan_static = self._fan_static(network.total, system_type)

        velocities = [r["actualVelocity"] for r in results]
        total_length = sum(r["length"] for r in results)

        return {
            "method": "EQUAL_FRICTION",
            "material": material,
            "systemType": system_type,
            "frictionRate": friction_rate,
            "sections": results,
            "criticalPath": {
                "mode": network.mode,
                "sectionIds": network.path,
                "totalPressureDropPa": round(network.total),
            },
            "fanStaticPressure": fan_static,
            "materialSchedule": self._material_schedule(results, material),
            "summary": {
                "totalSections": len(results),
                "totalDuctLength": rnd(total_length, 1),
                "maxVelocityMs": max(velocities) if velocities else 0,
                "totalPressureDropPa": round(network.total),
                "fanStaticPa": fan_static["totalFanStaticPa"],
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "fanStaticPa": s.get("fanStaticPa"),
            "maxVelocity": s.get("maxVelocityMs"),
            "totalLength": s.get("totalDuctLength"),
        }

    # -------------------------------------------------------------------------

    def _section(self, section: Dict[str, Any], index: int, material: str,
                 friction_rate: float, default_shape: str) -> Dict[str, Any]:
        prefix = f"sections[{index}]."
        consts = self.table("duct_constants")

        sid = section.get("id")
        if sid is None or sid == "":
            sid = f"S{index + 1}"
        parent = section.get("parentId")
        if parent == "":
            parent = None

        flow_cmh = number(section, "flowM3h", 0, prefix=prefix, minimum=0)
        flow_cfm = number(section, "flowCFM", 0, prefix=prefix, minimum=0)
        if flow_cmh > 0:
            flow_m3s = flow_cmh / 3600
            flow_cfm = flow_cmh * consts["cfm_per_m3h"]
        else:
            flow_m3s = flow_cfm / consts["cfm_per_m3s"]

        length = number(section, "lengthM", 5, prefix=prefix, minimum=0)
        application = text(section, "applicationType", DEFAULT_APPLICATION)
        shape = choice(section, "ductShape", default_shape, SHAPES, prefix=prefix, upper=True)

        mat = self.table("duct_materials")[material]
        max_vel = self.lookup("duct_max_velocity", application, 10.0)
        max_vel = min(max_vel, mat["max_velocity"])

        if shape == "CIRCULAR":
            size = self._size_circular(flow_m3s, max_vel)
        else:
            size = self._size_rectangular(
                flow_m3s, max_vel,
                number(section, "maxWidth", 2000, prefix=prefix),
                number(section, "maxHeight", 800, prefix=prefix),
            )

        fittings = self._fitting_losses(section.get("fittings") or [], size["actualVelocity"], prefix)
        straight = friction_rate * length
        total = straight + fittings["totalPa"]
        largest_side = max(size.get("widthMM", 0), size.get("diameterMM", 0))

        result = {
            "id": sid,
            "name": section.get("name", ""),
            "flowCFM": round(flow_cfm),
            "flowM3s": rnd(flow_m3s, 3),
            "length": length,
            "parentId": parent,
            "ductShape": shape,
            "applicationType": application,
        }
        result.update({k: v for k, v in size.items() if k != "warning"})
        result.update({
            "gauge": self._gauge(mat, largest_side),
            "frictionLoss": {
                "frictionRatePaPerM": friction_rate,
                "straightLossPa": rnd(straight, 1),
                "fittingLosses": fittings["details"],
                "totalFittingLossPa": rnd(fittings["totalPa"], 1),
            },
            "totalPressureDropPa": rnd(total, 1),
            "velocityCompliant": size["actualVelocity"] <= max_vel,
            "maxAllowedVelocity": max_vel,
        })
        if size.get("warning"):
            result["warning"] = size["warning"]
        return result

    def _size_rectangular(self, flow_m3s: float, max_vel: float,
                          max_w: float, max_h: float) -> Dict[str, Any]:
        target = flow_m3s / max_vel
        best: Optional[tuple] = None
        best_diff = math.inf

        for w in self.catalog("duct_standard_widths"):
            if w > max_w:
                continue
            for h in self.catalog("duct_standard_heights"):
                if h > max_h or h > w:
                    continue
                area = w * h / 1e6
                if area < target * 0.8:
                    continue
                if flow_m3s / area > max_vel * 1.05:
                    continue
                diff = abs(area - target)
                if diff < best_diff:
                    best_diff, best = diff, (w, h)

        warning = None
        if best is None:
            best = (600, 400)
            warning = "No standard size within constraints; 600 × 400mm assumed"
        w, h = best
        area = w * h / 1e6
        eq_dia = 1.3 * (w * h) ** 0.625 / (w + h) ** 0.25
        out = {
            "widthMM": w,
            "heightMM": h,
            "sizeLabel": f"{w} × {h}mm",
            "areaM2": rnd(area, 4),
            "equivalentDiaMM": round(eq_dia),
            "actualVelocity": rnd(flow_m3s / area, 1),
            "aspectRatio": rnd(w / h, 1),
        }
        if warning:
            out["warning"] = warning
        return out

    def _size_circular(self, flow_m3s: float, max_vel: float) -> Dict[str, Any]:
        target_dia = math.sqrt(flow_m3s / max_vel * 4 / math.pi) * 1000
        selection = select(self.catalog("duct_standard_diameters"), target_dia)
        d = selection.selected
        area = math.pi * (d / 1000) ** 2 / 4
        out = {
            "diameterMM": d,
            "sizeLabel": f"Ø{d}mm",
            "areaM2": rnd(area, 4),
            "equivalentDiaMM": d,
            "actualVelocity": rnd(flow_m3s / area, 1),
        }
        if selection.exceeded_catalog:
            out["warning"] = f"Required Ø{round(target_dia)}mm exceeds largest standard duct; split the flow"
        return out

    def _fitting_losses(self, fittings: List[Dict[str, Any]], velocity: float, prefix: str) -> Dict[str, Any]:
        density = self.table("duct_constants")["air_density"]
        dynamic_pressure = 0.5 * density * velocity ** 2
        total = 0.0
        details = []
        for j, fitting in enumerate(fittings):
            ftype = fitting.get("type", "")
            qty = number(fitting, "quantity", 1, prefix=f"{prefix}fittings[{j}].", minimum=0)
            c = self.lookup("duct_fitting_losses", ftype, 0.5)
            loss = c * dynamic_pressure * qty
            total += loss
            details.append({"type": ftype, "quantity": qty, "coefficient": c, "lossPa": rnd(loss, 1)})
        return {"totalPa": total, "details": details}

    @staticmethod
    def _gauge(material_props, largest_side: float) -> str:
        for band in material_props["gauges"]:
            if band["max_mm"] is None or largest_side <= band["max_mm"]:
                return band["gauge"]
        return "N/A"

    def _fan_static(self, path_pa: float, system_type: str) -> Dict[str, Any]:
        allowances = self.lookup("duct_fan_static_allowances", system_type)
        consts = self.table("duct_constants")
        sf = consts["fan_safety_factor"]
        total = round((path_pa + allowances["filter"] + allowances["coil"]
                       + allowances["grille"] + allowances["silencer"]) * sf)
        return {
            "ductLossPa": round(path_pa),
            "filterLossPa": allowances["filter"],
            "coilLossPa": allowances["coil"],
            "grilleLossPa": allowances["grille"],
            "silencerLossPa": allowances["silencer"],
            "safetyFactor": f"{round((sf - 1) * 100)}%",
            "totalFanStaticPa": total,
            "totalFanStaticInWG": rnd(total / consts["pa_per_inch_wg"]),
        }

    def _material_schedule(self, sections: List[Dict[str, Any]], material: str) -> Dict[str, Any]:
        schedule: Dict[str, Dict[str, Any]] = {}
        surface = 0.0
        for s in sections:
            entry = schedule.setdefault(s["sizeLabel"], {
                "size": s["sizeLabel"], "lengthM": 0.0, "gauge": s["gauge"], "sections": 0,
            })
            entry["lengthM"] = rnd(entry["lengthM"] + s["length"], 2)
            entry["sections"] += 1

            if "widthMM" in s:
                perimeter = 2 * (s["widthMM"] + s["heightMM"]) / 1000
            else:
                perimeter = math.pi * s.get("diameterMM", 0) / 1000
            surface += perimeter * s["length"]

        return {
            "material": material,
            "items": list(schedule.values()),
            "totalSurfaceAreaM2": rnd(surface, 1),
            "insulationArea": rnd(surface, 1),
            "insulationType": self.table("duct_constants")["insulation_type"],
        }
