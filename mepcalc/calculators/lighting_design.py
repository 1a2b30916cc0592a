"""
Lighting Design Calculator

Lumen method per IS 3646 with ECBC 2017 power density checks.
"""

import math
import logging
from typing import Any, Dict, List

from ..errors import ComputationError
from .base import CalculationType, Calculator, items, number, rnd, text

logger = logging.getLogger(__name__)


class LightingDesignCalculator(Calculator):
    """Room-by-room luminaire count, layout, LPD and LENI."""

    calculation_type = CalculationType.LIGHTING_DESIGN

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        building_type = text(params, "buildingType", "RESIDENTIAL").upper()
        rooms = items(params, "rooms")
        defaults = self.table("lighting_defaults")
        warnings: List[str] = []

        results = [self._room(room, i, defaults, warnings) for i, room in enumerate(rooms)]

        total_w = sum(r["totalWattage"] for r in results)
        total_area = sum(r["area"] for r in results)
        total_lum = sum(r["luminaireCount"] for r in results)

        lpd = total_w / total_area if total_area > 0 else 0.0
        limit = self.lookup("ecbc_max_lpd", building_type, defaults["ecbc_fallback_lpd"])
        compliant = lpd <= limit
        if not compliant:
            warnings.append(f"Overall LPD {lpd:.2f} W/m² exceeds ECBC limit {limit} W/m² for {building_type}")

        hours = self.table("lighting_operating_hours")
        profile = hours.get(building_type, hours["DEFAULT"])
        annual_kwh = total_w * profile["hoursPerDay"] * profile["daysPerYear"] / 1000
        leni = annual_kwh / total_area if total_area > 0 else 0.0

        return {
            "roomResults": results,
            "summary": {
                "totalRooms": len(results),
                "totalArea": round(total_area),
                "totalLuminaires": total_lum,
                "totalWattage": round(total_w),
                "overallLPD": rnd(lpd),
                "ecbcMaxLPD": limit,
                "ecbcCompliant": compliant,
                "annualEnergyKWh": round(annual_kwh),
                "leniKWhPerM2Year": rnd(leni),
            },
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        s = results.get("summary", {})
        return {
            "totalLuminaires": s.get("totalLuminaires"),
            "totalWattage": s.get("totalWattage"),
            "avgLPD": s.get("overallLPD"),
        }

    # -------------------------------------------------------------------------

    def _utilisation(self, room_index: float, rho_c: float, rho_w: float) -> float:
        uf = self.table("lighting_utilisation")
        base = min(uf["max"], uf["base"] + room_index * uf["per_room_index"])
        boost = rho_c * uf["ceiling_weight"] + rho_w * uf["wall_weight"]
        return min(uf["max"], max(uf["min"], base + boost - uf["offset"]))

    def _room(self, room: Dict[str, Any], index: int, defaults, warnings: List[str]) -> Dict[str, Any]:
        prefix = f"rooms[{index}]."
        name = room.get("name") or f"Room {index + 1}"
        space_type = text(room, "spaceType", defaults["space_type"], prefix=prefix)
        length = number(room, "length", 5, prefix=prefix, minimum=0)
        width = number(room, "width", 4, prefix=prefix, minimum=0)
        height = number(room, "height", 3.0, prefix=prefix, minimum=0)
        workplane = number(room, "workPlaneHeight", 0.8, prefix=prefix, minimum=0)
        area = number(room, "area", length * width, prefix=prefix, minimum=0)
        mf = number(room, "maintenanceFactor", defaults["maintenance_factor"], prefix=prefix)
        luminaire_type = text(room, "luminaireType", defaults["luminaire"], prefix=prefix)

        mounting = height - workplane
        if mounting <= 0:
            raise ComputationError(f"{name}: work plane ({workplane}m) is at or above the ceiling ({height}m)")
        if area <= 0 or length <= 0 or width <= 0:
            raise ComputationError(f"{name}: room dimensions must be positive")
        if not 0 < mf <= 1:
            raise ComputationError(f"{name}: maintenance factor must be in (0, 1]")

        luminaire = self.lookup("luminaire_types", luminaire_type)
        if luminaire is None:
            warnings.append(f"{name}: unknown luminaire '{luminaire_type}', {defaults['luminaire']} used")
            luminaire_type = defaults["luminaire"]
            luminaire = self.lookup("luminaire_types", luminaire_type)

        target = number(room, "targetLux", 0, prefix=prefix, minimum=0)
        if target <= 0:
            target = self.lookup("lux_requirements", space_type)
            if target is None:
                target = self.lookup("lux_requirements", defaults["fallback_space_type"])

        room_index = length * width / (mounting * (length + width))
        rho_c = self.lookup("surface_reflectances", text(room, "ceilingReflectance", defaults["ceiling"]),
                            defaults["ceiling_fallback"])
        rho_w = self.lookup("surface_reflectances", text(room, "wallReflectance", defaults["wall"]),
                            defaults["wall_fallback"])
        uf = self._utilisation(room_index, rho_c, rho_w)

        lumens = luminaire["lumens"]
        count = math.ceil(target * area / (lumens * uf * mf))
        achieved = count * lumens * uf * mf / area

        cols = max(1, math.ceil(math.sqrt(count * length / width)))
        rows = max(1, math.ceil(count / cols))
        spacing_x = length / cols
        spacing_y = width / rows
        max_spacing = mounting * defaults["max_spacing_to_height"]
        if max(spacing_x, spacing_y) > max_spacing:
            warnings.append(f"{name}: luminaire spacing exceeds {max_spacing:.1f}m; uniformity may suffer")

        total_w = count * luminaire["wattage"]
        return {
            "name": name,
            "spaceType": space_type,
            "area": area,
            "dimensions": f"{length:g}m × {width:g}m × {height:g}m",
            "requiredLux": target,
            "luminaireType": luminaire_type,
            "luminaireWattage": luminaire["wattage"],
            "luminaireLumens": lumens,
            "luminaireEfficacy": luminaire["efficacy"],
            "mountingHeight": rnd(mounting),
            "roomIndex": rnd(room_index),
            "utilizationFactor": rnd(uf, 3),
            "maintenanceFactor": mf,
            "luminaireCount": count,
            "layout": {
                "rows": rows,
                "columns": cols,
                "spacingX": rnd(spacing_x),
                "spacingY": rnd(spacing_y),
                "maxSpacing": rnd(max_spacing),
            },
            "achievedLux": round(achieved),
            "luxCompliant": achieved >= target,
            "totalWattage": total_w,
            "lpdWPerM2": rnd(total_w / area),
        }
