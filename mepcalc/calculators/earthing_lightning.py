"""
Earthing & Lightning Protection Calculator

Earthing system design per IS 3043 and lightning protection per
IS/IEC 62305: electrode resistance and count, earth conductor sizing,
strike risk assessment, air termination / down conductors, SPDs.
"""

import math
import logging
from typing import Any, Dict, List

from ..engine import select
from .base import CalculationType, Calculator, flag, integer, number, rnd, text

logger = logging.getLogger(__name__)

DEFAULT_ELECTRODE = "Copper Rod (16mm dia)"


def electrode_resistance(resistivity: float, electrode) -> float:
    """Resistance (ohm) of a single electrode in uniform soil."""
    formula = electrode["formula"]
    if formula == "plate":
        area = electrode["width"] * electrode["height"]
        return resistivity / (4 * math.sqrt(area / math.pi))
    length = electrode["length"]
    rod = resistivity / (2 * math.pi * length) * math.log(4 * length / electrode["diameter"])
    if formula == "chemical":
        return rod * 0.5
    return rod


class EarthingLightningCalculator(Calculator):
    """Earth pit design, lightning risk and LPS layout."""

    calculation_type = CalculationType.EARTHING_LIGHTNING

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        length = number(params, "buildingLength", 50, minimum=0)
        width = number(params, "buildingWidth", 20, minimum=0)
        height = number(params, "buildingHeight", 30, minimum=0)
        soil_type = text(params, "soilType", "Loam")
        measured = number(params, "measuredResistivity", 0, minimum=0)
        electrode_type = text(params, "electrodeType", DEFAULT_ELECTRODE)
        target = number(params, "targetResistance", 2, minimum=0.01)
        fault_a = number(params, "faultCurrentA", 5000, minimum=0)
        fault_s = number(params, "faultDurationS", 1.0, minimum=0)
        city = text(params, "city", "MUMBAI").upper()
        building_type = text(params, "buildingType", "RESIDENTIAL")
        lp_level = text(params, "lpLevel", "III").upper()
        explosives = flag(params, "hasExplosives", False)
        sensitive = flag(params, "hasSensitiveEquipment", False)
        transformers = integer(params, "numberOfTransformers", 1, minimum=0)

        warnings: List[str] = []
        if measured > 0:
            resistivity = measured
        else:
            resistivity = self.lookup("earthing_soil_resistivity", soil_type, None)
            if resistivity is None:
                warnings.append(f"Unknown soil type '{soil_type}', 100 ohm.m assumed")
                resistivity = 100

        earthing = self._earthing(resistivity, electrode_type, target, fault_a, fault_s,
                                  transformers, warnings)
        risk = self._risk(length, width, height, city, explosives, sensitive)
        lps = self._lightning_protection(length, width, height, lp_level, warnings)
        if risk["protectionRequired"] and _level_rank(lps["level"]) > _level_rank(risk["recommendedLevel"]):
            warnings.append(
                f"Selected LPS level {lps['level']} is weaker than the recommended level {risk['recommendedLevel']}"
            )

        return {
            "siteConditions": {
                "soilType": soil_type,
                "soilResistivity": resistivity,
                "city": city,
                "buildingType": building_type,
                "buildingDimensions": f"{length:g}m × {width:g}m × {height:g}m",
            },
            "earthingDesign": earthing,
            "riskAssessment": risk,
            "lightningProtection": lps,
            "surgeProtection": self._surge_protection(sensitive),
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        earthing = results.get("earthingDesign", {})
        return {
            "earthResistance": earthing.get("achievedResistance"),
            "protectionLevel": results.get("lightningProtection", {}).get("level"),
            "electrodes": earthing.get("numberOfElectrodes"),
        }

    # -------------------------------------------------------------------------

    def _earthing(self, resistivity, electrode_type, target, fault_a, fault_s,
                  transformers, warnings) -> Dict[str, Any]:
        electrodes = self.table("earthing_electrodes")
        if electrode_type not in electrodes:
            warnings.append(f"Unknown electrode '{electrode_type}', {DEFAULT_ELECTRODE} assumed")
            electrode_type = DEFAULT_ELECTRODE
        electrode = electrodes[electrode_type]
        consts = self.table("earthing_constants")

        single = electrode_resistance(resistivity, electrode)
        coupled = single * consts["coupling_factor"]
        count = max(math.ceil(coupled / target), consts["min_electrodes"])
        achieved = coupled / count

        copper = "Copper" in electrode["material"]
        k = self.lookup("earth_conductor_k", "Copper" if copper else "Steel")
        min_area = fault_a * math.sqrt(fault_s) / k
        conductor = select(self.catalog("earth_conductor_sizes"), min_area)
        if conductor.exceeded_catalog:
            warnings.append(
                f"Earth conductor of {min_area:.0f} sq.mm exceeds largest standard size; use parallel conductors"
            )

        plate = electrode["formula"] == "plate"
        chemical = electrode["formula"] == "chemical"
        rod_length = electrode.get("length", 0)
        transformer_earths = transformers * consts["earths_per_transformer"]

        return {
            "electrode": {
                "type": electrode_type,
                "material": electrode["material"],
                "length": rod_length,
            },
            "soilResistivity": resistivity,
            "singleElectrodeResistance": rnd(single),
            "targetResistance": target,
            "numberOfElectrodes": count,
            "achievedResistance": rnd(achieved),
            "compliant": achieved <= target,
            "earthConductor": {
                "minAreaSqMM": rnd(min_area, 1),
                "selectedAreaSqMM": conductor.selected,
                "material": "Copper" if copper else "GI",
                "kFactor": k,
            },
            "earthPitDetails": {
                "depthM": 2.0 if plate else 0.5,
                "spacingM": rod_length * 2 if rod_length else 2.0,
                "backfillMaterial": "Chemical compound (maintenance-free)" if chemical else "Charcoal + Salt + Sand",
                "backfillQuantity": "Pre-filled" if chemical else "10kg charcoal + 5kg salt per pit",
            },
            "transformerEarths": transformer_earths,
            "totalEarthPits": count + transformer_earths,
            "earthBusBar": {
                "material": "Copper",
                "size": "50mm × 6mm",
                "location": "Main switchboard room",
            },
        }

    def _risk(self, length, width, height, city, explosives, sensitive) -> Dict[str, Any]:
        consts = self.table("earthing_constants")
        levels = self.table("keraunic_levels")
        keraunic = levels.get(city, levels["DEFAULT"])
        ng = keraunic * consts["flash_density_per_td"]

        collection = (length * width + 2 * length * height + 2 * width * height
                      + math.pi * height ** 2)
        nd = ng * collection / 1e6

        tolerable = self.table("lightning_tolerable_frequency")
        if explosives:
            nc = tolerable["explosives"]
        elif sensitive:
            nc = tolerable["sensitive"]
        else:
            nc = tolerable["default"]

        required = nd > nc
        efficiency = max(0.0, 1 - nc / nd) if required else 0.0

        recommended = "IV"
        for name, level in self.table("lp_levels").items():
            if efficiency >= level["efficiency"]:
                recommended = name
                break

        return {
            "flashDensityNg": rnd(ng, 3),
            "collectionAreaM2": round(collection),
            "annualStrikeFrequencyNd": rnd(nd, 6),
            "tolerableFrequencyNc": nc,
            "protectionRequired": required,
            "requiredProtectionEfficiency": rnd(efficiency * 100, 1),
            "recommendedLevel": recommended,
            "keraunicLevel": keraunic,
        }

    def _lightning_protection(self, length, width, height, lp_level, warnings) -> Dict[str, Any]:
        levels = self.table("lp_levels")
        if lp_level not in levels:
            warnings.append(f"Unknown protection level '{lp_level}', level III assumed")
            lp_level = "III"
        level = levels[lp_level]
        consts = self.table("earthing_constants")

        mesh = level["meshSize"]
        rods_length = math.ceil(length / mesh) + 1
        rods_width = math.ceil(width / mesh) + 1
        roof_rods = rods_length * 2 + rods_width * 2 - 4
        mesh_length = rods_length * width + rods_width * length

        perimeter = 2 * (length + width)
        down_count = max(2, math.ceil(perimeter / level["downConductorSpacing"]))
        down_length = height * down_count
        ring_length = perimeter + 4
        rod_length = consts["earth_rod_length_m"]
        strip_total = mesh_length + down_length + ring_length

        return {
            "level": lp_level,
            "rollingSphereRadius": level["rollingSphereRadius"],
            "meshSize": f"{mesh}m × {mesh}m",
            "airTermination": {
                "method": "Mesh + Franklin rod hybrid",
                "meshConductorLengthM": round(mesh_length),
                "numberOfRods": roof_rods,
                "rodHeight": 1.0 if height > consts["tall_roof_rod_above_m"] else 0.5,
            },
            "downConductors": {
                "count": down_count,
                "spacing": level["downConductorSpacing"],
                "totalLengthM": round(down_length),
                "material": "GI Strip 25mm × 3mm / GI Round 8mm dia",
            },
            "earthTermination": {
                "type": "Ring earth + driven rods",
                "ringEarthLengthM": round(ring_length),
                "numberOfRods": down_count,
                "rodLengthM": rod_length,
                "targetResistanceOhm": consts["lps_earth_target_ohm"],
            },
            "separationDistanceM": rnd(consts["separation_coefficient"] * height),
            "testLinks": down_count,
            "materialSummary": {
                "giStripOrRoundM": round(strip_total),
                "earthRodsCount": down_count,
                "earthRodLengthEachM": rod_length,
                "testJointBoxes": down_count,
                "clamps": round(strip_total / consts["clamp_spacing_m"]),
            },
        }

    def _surge_protection(self, sensitive: bool) -> Dict[str, Any]:
        devices = [
            {k: v for k, v in spd.items() if k != "sensitiveOnly"}
            for spd in self.table("surge_protection_devices")
            if sensitive or not spd["sensitiveOnly"]
        ]
        return {
            "required": True,
            "devices": devices,
            "coordinationType": "Energy coordination per IEC 61643-12",
            "notes": [
                "SPDs must be coordinated (decoupling inductance or distance >10m between stages)",
                "Green/Red status indicator required on each SPD",
                "Remote monitoring contact recommended for critical installations",
            ],
        }


def _level_rank(level: str) -> int:
    return ("I", "II", "III", "IV").index(level)
