"""
Electrical Load Calculator

Connected load and maximum demand roll-up for a residential development:

- Building common-area loads (lighting, lifts, HVAC, pressurization, PHE,
  fire fighting, other) per building
- Residential flat loads per building
- Society-level loads (fire pumps, PHE transfer, infrastructure)
- Building diversity by area type, grand totals and transformer size
- Regulatory checks (minimum load, sanctioned load limits, DTC threshold)
  and the utility infrastructure they imply: DTCs, HV substation band,
  land to hand over and lease terms

Every load item carries three demand factors: max demand (mdf), essential
(edf, DG backed) and fire mode (fdf). Fire loads are never diversified.
"""

import re
import math
import logging
from typing import Any, Dict, List, Optional

from ..engine import select
from .base import CalculationType, Calculator, choice, flag, integer, items, number, rnd, text

logger = logging.getLogger(__name__)

AREA_TYPES = ("RURAL", "URBAN", "METRO", "MAJOR_CITIES")
TOTAL_KEYS = ("tcl", "maxDemand", "essential", "fire")


def working_units(config: str, default: int = 1) -> int:
    """Working unit count from a pump set description ("2W+1S", "2 Main+SBY+Jky")."""
    match = re.search(r"(\d+)\s*(?:W|Main)\b", config, re.IGNORECASE)
    return int(match.group(1)) if match else default


def group_totals(group: Dict[str, Any]) -> Dict[str, Any]:
    loads = group["items"]
    group["totalTCL"] = rnd(sum(i["tcl"] for i in loads), 3)
    group["totalMaxDemand"] = rnd(sum(i["maxDemandKW"] for i in loads), 3)
    group["totalEssential"] = rnd(sum(i["essentialKW"] for i in loads), 3)
    group["totalFire"] = rnd(sum(i["fireKW"] for i in loads), 3)
    return group


def sum_groups(groups: List[Dict[str, Any]]) -> Dict[str, float]:
    return {
        "tcl": sum(g["totalTCL"] for g in groups),
        "maxDemand": sum(g["totalMaxDemand"] for g in groups),
        "essential": sum(g["totalEssential"] for g in groups),
        "fire": sum(g["totalFire"] for g in groups),
    }


class ElectricalLoadCalculator(Calculator):
    """Building and society electrical load roll-up with transformer sizing."""

    calculation_type = CalculationType.ELECTRICAL_LOAD

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        area_type = choice(params, "areaType", "URBAN", AREA_TYPES, upper=True)
        warnings: List[str] = []

        buildings = items(params, "buildings")
        if not buildings:
            count = integer(params, "numberOfBuildings", 1, minimum=1)
            buildings = [{"name": f"Building {n + 1}"} for n in range(count)]

        diversity = self.lookup("building_diversity", area_type)
        breakdowns = []
        for i, building in enumerate(buildings):
            breakdowns.append(self._building(params, building, i, diversity))

        society = [group_totals(g) for g in self._society_groups(params, warnings)]
        society_totals = sum_groups(society)
        building_totals = {k: sum(b["totals"][k] for b in breakdowns) for k in TOTAL_KEYS}

        grand = {k: building_totals[k] + society_totals[k] for k in TOTAL_KEYS}
        regs = self.table("electrical_regulations")
        transformer = self._transformer(grand["maxDemand"] / regs["power_factor"]["TRANSFORMER_SIZING"])

        carpet = number(params, "totalCarpetArea", 0, minimum=0)
        if carpet <= 0:
            carpet = sum(b["carpetArea"] for b in breakdowns)
        compliance = self._compliance(grand, area_type, carpet, len(breakdowns))
        warnings.extend(compliance["warnings"])

        logger.debug(f"Electrical load: TCL {grand['tcl']:.1f} kW, MD {grand['maxDemand']:.1f} kW, "
                     f"transformer {transformer} kVA")

        return {
            "areaType": area_type,
            "buildingDiversityFactor": diversity,
            "buildingBreakdowns": breakdowns,
            "societyCALoads": society,
            "totals": {
                "perBuilding": {k: rnd(v) for k, v in building_totals.items()},
                "society": {k: rnd(v) for k, v in society_totals.items()},
                "grandTotalTCL": rnd(grand["tcl"]),
                "totalMaxDemand": rnd(grand["maxDemand"]),
                "totalEssential": rnd(grand["essential"]),
                "totalFire": rnd(grand["fire"]),
                "transformerSizeKVA": transformer,
                "numberOfBuildings": len(breakdowns),
            },
            "regulatoryCompliance": compliance,
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        totals = results.get("totals", {})
        return {
            "totalConnectedLoadKW": totals.get("grandTotalTCL"),
            "maxDemandKW": totals.get("totalMaxDemand"),
            "transformerKVA": totals.get("transformerSizeKVA"),
        }

    # -------------------------------------------------------------------------
    # Load items
    # -------------------------------------------------------------------------

    def _factor(self, description: str) -> Dict[str, Any]:
        factor = self.lookup("electrical_demand_factors", description)
        if factor is None:
            logger.warning(f"No demand factors for '{description}', using 0.6/0.6/0")
            factor = self.table("electrical_default_factor")
        return factor

    def _item(self, label: str, factor_name: str, tcl: float, nos: float = 1,
              kw_per_unit: Optional[float] = None, **extra) -> Dict[str, Any]:
        factor = self._factor(factor_name)
        item = {"description": label, "nos": nos}
        if kw_per_unit is not None:
            item["kwPerUnit"] = kw_per_unit
        item.update(extra)
        item.update({
            "tcl": rnd(tcl, 3),
            "mdf": factor["mdf"],
            "edf": factor["edf"],
            "fdf": factor["fdf"],
            "maxDemandKW": rnd(tcl * factor["mdf"], 3),
            "essentialKW": rnd(tcl * factor["edf"], 3),
            "fireKW": rnd(tcl * factor["fdf"], 3),
        })
        return item

    def _rated(self, table: str, query: float) -> float:
        return self.store.nearest_value(table, query)

    # -------------------------------------------------------------------------
    # Buildings
    # -------------------------------------------------------------------------

    def _building(self, params, building: Dict[str, Any], index: int, diversity: float) -> Dict[str, Any]:
        inputs = dict(params)
        inputs.update({k: v for k, v in building.items() if v is not None and k != "flats"})
        name = building.get("name") or f"Building {index + 1}"

        groups = [group_totals(g) for g in (
            self._lighting(inputs),
            self._lifts(inputs),
            self._hvac(inputs),
            self._pressurization(inputs),
            self._building_phe(inputs),
            self._building_ff(inputs),
            self._other(inputs),
        )]
        flats = group_totals(self._flats(items(building, "flats"), f"buildings[{index}].flats"))

        ca = sum_groups(groups)
        totals = {
            "tcl": ca["tcl"] + flats["totalTCL"],
            "maxDemand": (ca["maxDemand"] + flats["totalMaxDemand"]) * diversity,
            "essential": (ca["essential"] + flats["totalEssential"]) * diversity,
            "fire": ca["fire"] + flats["totalFire"],
        }
        return {
            "buildingName": name,
            "buildingHeight": number(inputs, "buildingHeight", 90, minimum=0),
            "numberOfFloors": integer(inputs, "numberOfFloors", 30, minimum=1),
            "carpetArea": number(building, "carpetArea", 0, minimum=0),
            "totalUnits": sum(i["nos"] for i in flats["items"]),
            "diversityFactor": diversity,
            "buildingCALoads": groups,
            "flatLoads": flats,
            "totals": {k: rnd(v, 3) for k, v in totals.items()},
        }

    def _flats(self, flats: List[Dict[str, Any]], prefix: str) -> Dict[str, Any]:
        factor = self._factor("Residential Flat Load")
        loads = []
        for j, flat in enumerate(flats):
            p = f"{prefix}[{j}]."
            flat_type = text(flat, "flatType", "Unknown", prefix=p)
            area = number(flat, "areaSqm", 0, prefix=p, minimum=0)
            count = integer(flat, "count", 0, prefix=p, minimum=0)
            if area == 0 or count == 0:
                continue
            per_flat = area * factor["wattPerSqm"] / 1000
            loads.append(self._item(f"{flat_type} ({area:.0f} sqm)", "Residential Flat Load",
                                    per_flat * count, count, rnd(per_flat), areaSqm=area,
                                    wattPerSqm=factor["wattPerSqm"]))
        return {"category": "Residential Flat Loads", "items": loads}

    def _lighting(self, inputs) -> Dict[str, Any]:
        floors = integer(inputs, "numberOfFloors", 30, minimum=1)
        consts = self.table("electrical_constants")
        loads = []

        gf_area = number(inputs, "gfEntranceLobby", 100, minimum=0)
        w = self._factor("GF Entrance Lobby")["wattPerSqm"]
        loads.append(self._item("GF Entrance Lobby", "GF Entrance Lobby", w * gf_area / 1000,
                                areaSqm=gf_area, wattPerSqm=w))

        typ_area = number(inputs, "typicalFloorLobby", 30, minimum=0)
        w = self._factor("Typical Floor Lobby")["wattPerSqm"]
        loads.append(self._item("Typical Floor Lobby", "Typical Floor Lobby", w * typ_area * floors / 1000,
                                floors, areaSqm=typ_area, wattPerSqm=w))

        landings = floors * consts["staircases_per_building"] * consts["landings_per_staircase"]
        w = self._factor("Staircases & Landings")["wattPerFixture"]
        loads.append(self._item("Staircases & Landings", "Staircases & Landings", w * landings / 1000,
                                landings, wattPerFixture=w))

        if flag(inputs, "terraceLighting"):
            area = number(inputs, "terraceArea", 200, minimum=0)
            w = self._factor("Terrace Lighting")["wattPerSqm"]
            loads.append(self._item("Terrace Lighting", "Terrace Lighting", w * area / 1000,
                                    areaSqm=area, wattPerSqm=w))

        if flag(inputs, "landscapeLighting"):
            kw = number(inputs, "landscapeLightingLoad", 10, minimum=0)
            loads.append(self._item("Landscape & External Lighting", "Landscape & External Lighting", kw))

        return {"category": "Lighting & Small Power", "items": loads}

    def _lifts(self, inputs) -> Dict[str, Any]:
        height = number(inputs, "buildingHeight", 90, minimum=0)
        kw = self._rated("lift_power_by_height", height)
        loads = []
        for key, label, factor, default in (
            ("passengerLifts", "Passenger Lifts", "Passenger Lift", 2),
            ("passengerFireLifts", "Passenger + Fire Lift", "Passenger + Fire Lift", 0),
            ("firemenLifts", "Firemen Evac/Service Lift", "Firemen Lift", 0),
        ):
            count = integer(inputs, key, default, minimum=0)
            if count > 0:
                loads.append(self._item(label, factor, count * kw, count, kw))
        return {"category": "Lifts", "items": loads}

    def _hvac(self, inputs) -> Dict[str, Any]:
        consts = self.table("electrical_constants")
        lobby_type = text(inputs, "lobbyType", "Non-AC")
        loads = []

        if lobby_type.upper() == "AC":
            floors = integer(inputs, "numberOfFloors", 30, minimum=1)
            area = (number(inputs, "gfEntranceLobby", 100, minimum=0)
                    + number(inputs, "typicalFloorLobby", 30, minimum=0) * floors)
            tonnage = math.ceil(area * consts["sqft_per_sqm"] / consts["sqft_per_tr"])
            kw_per_tr = self._rated("ac_power_by_tonnage", min(tonnage, consts["max_split_ac_tr"]))
            loads.append(self._item("Lobby Air Conditioning", "Lobby Air Conditioning", tonnage * kw_per_tr,
                                    tonnage=tonnage, kwPerTR=kw_per_tr))

        if lobby_type.lower().startswith("mech") or flag(inputs, "mechanicalVentilation"):
            kw = self._rated("ventilation_fan_power_by_cfm", number(inputs, "ventilationCFM", 5000, minimum=0))
            fans = integer(inputs, "ventilationFans", 4, minimum=0)
            loads.append(self._item("Mechanical Ventilation Fans", "Mechanical Ventilation Fans",
                                    fans * kw, fans, kw))

        return {"category": "HVAC & Ventilation", "items": loads}

    def _pressurization(self, inputs) -> Dict[str, Any]:
        fans = self.table("pressurization_fan_power")
        stairs = integer(inputs, "numberOfStaircases", 2, minimum=0)
        loads = [self._item("Staircase Pressurization Fans", "Staircase Pressurization",
                            stairs * fans["staircase"], stairs, fans["staircase"])]

        fire_lifts = (integer(inputs, "passengerFireLifts", 0, minimum=0)
                      + integer(inputs, "firemenLifts", 0, minimum=0))
        if fire_lifts > 0:
            # One system per fire lift group, not per floor
            systems = integer(inputs, "fireLobbyPressurizationSystems", 1, minimum=0)
            loads.append(self._item("Fire Lift Lobby Pressurization", "Fire Lift Lobby Pressurization",
                                    systems * fans["lobby"], systems, fans["lobby"]))
        return {"category": "Pressurization Systems", "items": loads}

    def _building_phe(self, inputs) -> Dict[str, Any]:
        loads = []
        flow = number(inputs, "boosterPumpFlow", 0, minimum=0)
        if flow > 0:
            config = text(inputs, "boosterPumpSet", "1W+1S")
            pumps = working_units(config)
            kw = self._rated("phe_pump_power_by_flow", flow)
            loads.append(self._item("PHE Booster Pumps", "Booster Pump", pumps * kw, pumps, kw,
                                    config=config, flowLPM=flow))

        capacity = number(inputs, "sewagePumpCapacity", 0, minimum=0)
        if capacity > 0:
            pumps = integer(inputs, "sewagePumpSet", 2, minimum=0)
            kw = self._rated("sewage_pump_power_by_flow", capacity)
            loads.append(self._item("Sewage Pumps", "Sewage Pump", pumps * kw, pumps, kw, capacityLPM=capacity))
        return {"category": "PHE (Building Level)", "items": loads}

    def _building_ff(self, inputs) -> Dict[str, Any]:
        consts = self.table("electrical_constants")
        height = number(inputs, "buildingHeight", 90, minimum=0)
        loads = []
        # Wet riser is mandatory above 15 m unless explicitly disabled
        if flag(inputs, "wetRiserPump", height > consts["wet_riser_above_m"]):
            kw = number(inputs, "wetRiserPumpPower", consts["wet_riser_pump_kw"], minimum=0)
            loads.append(self._item("Wet Riser Pump", "Wet Riser Pump", kw, 1, kw))
        return {"category": "Fire Fighting (Building)", "items": loads}

    def _other(self, inputs) -> Dict[str, Any]:
        return {"category": "Other Building Loads", "items": [
            self._item("Security & CCTV", "Security System", number(inputs, "securitySystemLoad", 2, minimum=0)),
            self._item("Common Area Power Sockets", "Common Area Power",
                       number(inputs, "smallPowerLoad", 5, minimum=0)),
        ]}

    # -------------------------------------------------------------------------
    # Society
    # -------------------------------------------------------------------------

    def _society_groups(self, params, warnings: List[str]) -> List[Dict[str, Any]]:
        return [self._ff_pumps(params), self._transfer_pumps(params), self._infrastructure(params, warnings)]

    def _ff_pumps(self, params) -> Dict[str, Any]:
        consts = self.table("electrical_constants")
        jockey_kw = consts["jockey_pump_kw"]
        jockey_flow = consts["jockey_flow_lpm"]

        main_flow = number(params, "mainPumpFlow", 2850, minimum=0)
        sets = working_units(text(params, "fbtPumpSetType", "Main+SBY+Jky"))
        main_kw = self._rated("ff_main_pump_power_by_flow", main_flow)
        loads = [
            self._item("Main Hydrant Pump", "Fire Main Pump", sets * main_kw, sets, main_kw, flowLPM=main_flow),
            self._item("Hydrant Jockey Pump", "Fire Jockey Pump", sets * jockey_kw, sets, jockey_kw,
                       flowLPM=jockey_flow),
        ]

        sprinkler_flow = number(params, "sprinklerPumpFlow", 0, minimum=0)
        if sprinkler_flow > 0:
            sets = working_units(text(params, "sprinklerPumpSet", "Main+SBY+Jky"))
            kw = self._rated("ff_sprinkler_pump_power_by_flow", sprinkler_flow)
            loads.append(self._item("Sprinkler Main Pump", "Sprinkler Pump", sets * kw, sets, kw,
                                    flowLPM=sprinkler_flow))
            loads.append(self._item("Sprinkler Jockey Pump", "Fire Jockey Pump", sets * jockey_kw, sets,
                                    jockey_kw, flowLPM=jockey_flow))
        return {"category": "Fire Fighting System", "items": loads}

    def _transfer_pumps(self, params) -> Dict[str, Any]:
        loads = []
        flow = number(params, "domTransferFlow", 0, minimum=0)
        if flow > 0:
            config = text(params, "domTransferConfig", "1W+1S")
            pumps = working_units(config)
            kw = self._rated("phe_pump_power_by_flow", flow)
            loads.append(self._item("Domestic Transfer Pumps", "Domestic Transfer Pump", pumps * kw, pumps, kw,
                                    config=config, flowLPM=flow))
        return {"category": "PHE Transfer Pumps", "items": loads}

    def _infrastructure(self, params, warnings: List[str]) -> Dict[str, Any]:
        loads = []
        stp = number(params, "stpCapacity", 0, minimum=0)
        if stp > 0:
            kw = self._rated("stp_power_by_capacity", stp)
            loads.append(self._item("STP/WTP Plant", "STP/WTP Plant", kw, 1, kw, capacityKLD=stp))

        clubhouse = number(params, "clubhouseLoad", 0, minimum=0)
        if clubhouse > 0:
            loads.append(self._item("Clubhouse & Amenities", "Clubhouse & Amenities", clubhouse))

        chargers = integer(params, "evChargerCount", 0, minimum=0)
        if chargers > 0:
            charger_type = text(params, "evChargerType", "fast").lower()
            kw = self.lookup("ev_charger_power", charger_type)
            if kw is None:
                warnings.append(f"Unknown EV charger type '{charger_type}', fast charger rating used")
                kw = self.lookup("ev_charger_power", "fast")
            loads.append(self._item(f"EV Charging Stations ({charger_type})", "EV Charger",
                                    chargers * kw, chargers, kw))

        street = number(params, "streetLightingLoad", 0, minimum=0)
        if street > 0:
            loads.append(self._item("Street & Common Area Lighting", "Street Lighting", street))
        return {"category": "Society Infrastructure", "items": loads}

    # -------------------------------------------------------------------------
    # Supply
    # -------------------------------------------------------------------------

    def _transformer(self, required_kva: float) -> int:
        pick = select(self.catalog("transformer_sizes"), required_kva)
        if not pick.exceeded_catalog:
            return pick.selected
        step = self.table("electrical_constants")["transformer_round_kva"]
        return int(math.ceil(required_kva / step) * step)

    def _compliance(self, grand: Dict[str, float], area_type: str, carpet: float,
                    buildings: int) -> Dict[str, Any]:
        regs = self.table("electrical_regulations")
        pf = regs["power_factor"]
        warnings: List[str] = []

        minimum_kw = carpet * regs["minimum_load_w_per_sqm"]["RESIDENTIAL"] / 1000
        sanctioned_kw = max(grand["tcl"], minimum_kw)
        sanctioned_kva = sanctioned_kw / pf["SANCTIONED_LOAD"]
        md_kva = grand["maxDemand"] / pf["LOAD_AFTER_DF"]

        limit_type = "MULTIPLE_CONSUMERS_CUMULATIVE" if buildings > 1 else "SINGLE_CONSUMER"
        limit = regs["sanctioned_limits"][limit_type]
        over_kw = sanctioned_kw > limit["maxKW"]
        over_kva = sanctioned_kva > limit["maxKVA"]
        if over_kw:
            warnings.append(f"Sanctioned load {sanctioned_kw:.2f} kW exceeds limit of {limit['maxKW']} kW")
        if over_kva:
            warnings.append(f"Sanctioned load {sanctioned_kva:.2f} kVA exceeds limit of {limit['maxKVA']} kVA")

        threshold = regs["dtc_threshold_kva"][area_type]
        dtc = self._dtc(md_kva, threshold, regs["dtc_unit_kva"], area_type)
        substation = self._substation(md_kva, area_type)
        if substation["needed"]:
            warnings.append(f"Load after DF {substation['loadAfterDF_MVA']} MVA needs a "
                            f"{substation['substationType']}")

        return {
            "minimumLoad": {
                "requiredKW": rnd(minimum_kw),
                "carpetArea": carpet,
                "standardWPerSqm": regs["minimum_load_w_per_sqm"]["RESIDENTIAL"],
                "applied": minimum_kw > grand["tcl"],
            },
            "sanctionedLoad": {
                "totalConnectedLoadKW": rnd(grand["tcl"]),
                "sanctionedLoadKW": rnd(sanctioned_kw),
                "sanctionedLoadKVA": rnd(sanctioned_kva),
                "powerFactor": pf["SANCTIONED_LOAD"],
            },
            "loadAfterDF": {
                "maxDemandKW": rnd(grand["maxDemand"]),
                "maxDemandKVA": rnd(md_kva),
                "essentialKW": rnd(grand["essential"]),
                "fireKW": rnd(grand["fire"]),
                "powerFactor": pf["LOAD_AFTER_DF"],
            },
            "validation": {
                "limitType": limit_type,
                "valid": not (over_kw or over_kva),
                "exceedsKWLimit": over_kw,
                "exceedsKVALimit": over_kva,
                "maxKW": limit["maxKW"],
                "maxKVA": limit["maxKVA"],
            },
            "dtc": dtc,
            "substation": substation,
            "land": self._land(dtc, substation),
            "lease": self._lease(),
            "areaType": area_type,
            "warnings": warnings,
        }

    def _dtc(self, md_kva: float, threshold: float, unit: float, area_type: str) -> Dict[str, Any]:
        """Distribution transformer centres, with outdoor DTC land per unit."""
        count = max(1, math.ceil(md_kva / unit))
        land_type = self.table("electrical_dtc_land_type")
        land = self.lookup("electrical_land", land_type)
        ring_main = area_type in self.table("electrical_ring_main_areas")
        return {
            "needed": md_kva > threshold,
            "thresholdKVA": threshold,
            "loadAfterDF_KVA": rnd(md_kva),
            "dtcCount": count,
            "dtcCapacityPerUnit": unit,
            "totalCapacity": count * unit,
            "landType": land_type,
            "landRequired": land["landSqm"] + (count - 1) * land["additionalPerUnitSqm"],
            "individualTransformerRequired": ring_main,
            "ringMainRequired": ring_main,
        }

    def _substation(self, md_kva: float, area_type: str) -> Dict[str, Any]:
        """
        HV substation band for the load after DF.

        Bands are (minMVA, maxMVA]; the first band listed for the area
        type (or for every area type) that contains the load applies.
        """
        mva = md_kva / 1000
        for band in self.table("electrical_substations"):
            areas = band.get("areaTypes")
            if areas is not None and area_type not in areas:
                continue
            upper = band["maxMVA"]
            if band["minMVA"] < mva and (upper is None or mva <= upper):
                break
        else:
            return {"needed": False, "loadAfterDF_MVA": rnd(mva, 3),
                    "reason": "Load does not require substation"}

        land = self.lookup("electrical_land", band["land"])
        options = [
            {"type": name, "landSqm": entry["landSqm"], "description": entry["description"]}
            for name, entry in self.table("electrical_land").items()
            if name.startswith("SUBSTATION") and entry["landSqm"] is not None
            and area_type in entry.get("areaTypes", (area_type,))
        ] if land["landSqm"] is not None else []

        return {
            "needed": True,
            "loadAfterDF_MVA": rnd(mva, 3),
            "substationType": band["substationType"],
            "incomingFeeders": band["incomingFeeders"],
            "feederCapacityMVA": band["feederCapacityMVA"],
            "specialRequirements": list(band["specialRequirements"]),
            "landType": band["land"],
            "landRequired": land["landSqm"],
            "landOptions": options,
            "description": band["description"],
        }

    @staticmethod
    def _land(dtc: Dict[str, Any], substation: Dict[str, Any]) -> Dict[str, Any]:
        """Land to hand over to the utility: DTCs when needed, plus any substation."""
        breakdown = []
        if dtc["needed"]:
            breakdown.append({
                "type": "DTC",
                "count": dtc["dtcCount"],
                "landPerUnit": rnd(dtc["landRequired"] / dtc["dtcCount"]),
                "totalLand": dtc["landRequired"],
            })
        if substation["needed"] and substation["landRequired"] is not None:
            breakdown.append({
                "type": "Substation",
                "substationType": substation["substationType"],
                "totalLand": substation["landRequired"],
            })
        return {
            "total": rnd(sum(b["totalLand"] for b in breakdown)),
            "breakdown": breakdown,
            "unit": "sq.m",
        }

    def _lease(self) -> Dict[str, Any]:
        terms = self.table("electrical_lease_terms")
        return {
            "duration": f"{terms['durationYears']} years",
            "annualRent": f"Rs. {terms['annualRentRs']}/-",
            "upfrontPayment": f"Rs. {terms['upfrontPaymentRs']}/-",
            "encumbranceFree": terms["encumbranceFree"],
            "registrationRequired": terms["registrationRequired"],
            "surrenderNotice": f"{terms['surrenderNoticeMonths']} months",
        }
