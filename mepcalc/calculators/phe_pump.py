"""
PHE Pump Calculator

Booster, transfer and sewage pump selection: discharge pipe size,
Hazen-Williams friction, total dynamic head, motor rating, NPSH check
and running energy.
"""

import logging
from typing import Any, Dict, List

from ..engine import select
from .base import CalculationType, Calculator, flag, integer, items, number, rnd, text
from .hydraulics import (
    M_HEAD_PER_BAR,
    diameter_for_velocity,
    hazen_williams_loss,
    hydraulic_power_kw,
    pipe_velocity,
    size_pipe,
)

logger = logging.getLogger(__name__)

SEWAGE_APPLICATIONS = ("Sewage", "Drainage")


class PHEPumpCalculator(Calculator):
    """Plumbing pump duty, motor and NPSH."""

    calculation_type = CalculationType.PHE_PUMP

    def calculate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        application = text(params, "pumpApplication", "Domestic Booster")
        flow_m3h = number(params, "flowRateM3h", 0, minimum=0)
        flow_lpm = flow_m3h * 1000 / 60 if flow_m3h > 0 else number(params, "flowRateLPM", 300, minimum=0)
        suction_level = number(params, "suctionLevel", 0)
        discharge_level = number(params, "dischargeLevel", 30)
        residual = number(params, "residualPressureM", 7, minimum=0)
        material = text(params, "pipeMaterial", "GI (new)")
        pipe_length = number(params, "pipeLength", 100, minimum=0)
        suction_head = number(params, "staticSuctionHead", 3)
        suction_length = number(params, "suctionPipeLength", 10, minimum=0)
        suction_dia = number(params, "suctionPipeDia", 80, minimum=1)
        atmospheric = number(params, "atmosphericPressureM", 10.3, minimum=0)
        water_temp = number(params, "waterTemperature", 25)
        working = integer(params, "numberOfPumps", 2, minimum=1)
        standby = integer(params, "standbyPumps", 1, minimum=0)
        has_vfd = flag(params, "hasVFD", False)
        hours = number(params, "operatingHoursPerDay", 8, minimum=0)

        consts = self.table("phe_constants")
        tariff = number(params, "electricityRate", consts["default_tariff"], minimum=0)
        c_factor = self.lookup("phe_pipe_c_values", material, 120)
        warnings: List[str] = []

        pipe = self._pipe(flow_lpm, consts, warnings)
        friction = self._friction(flow_lpm, pipe["selectedSize"], c_factor, pipe_length,
                                  items(params, "fittings"), consts)

        static = discharge_level - suction_level
        tdh = static + friction["totalLoss"] + residual
        head = {
            "staticHeadM": rnd(static),
            "frictionLossM": friction["totalLoss"],
            "residualPressureM": residual,
            "totalDynamicHead": rnd(tdh),
            "totalDynamicHeadBar": rnd(tdh / M_HEAD_PER_BAR),
        }

        per_pump_lpm = flow_lpm / working
        pump = self._pump(application, per_pump_lpm, tdh, consts, warnings)
        npsh = self._npsh(atmospheric, suction_head, water_temp, suction_length, suction_dia,
                          per_pump_lpm, c_factor, consts)
        if not npsh["adequate"]:
            warnings.append(f"NPSH available {npsh['npshAvailable']}m is below "
                            f"{consts['npsh_margin']} x required")

        return {
            "application": application,
            "designFlow": {
                "flowRateLPM": rnd(flow_lpm, 1),
                "flowRateM3h": rnd(flow_lpm * 0.06),
                "flowRateLPS": rnd(flow_lpm / 60),
            },
            "pipeSizing": pipe,
            "frictionLoss": friction,
            "totalHead": head,
            "pumpSelection": pump,
            "npshCheck": npsh,
            "pumpConfiguration": {
                "workingPumps": working,
                "standbyPumps": standby,
                "totalPumps": working + standby,
                "configuration": f"{working}W + {standby}S",
                "hasVFD": has_vfd,
                "flowPerPumpLPM": round(per_pump_lpm),
            },
            "energyAnalysis": self._energy(pump["motorPowerKW"], working, hours, has_vfd, tariff, consts),
            "warnings": warnings,
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "flowM3h": results.get("designFlow", {}).get("flowRateM3h"),
            "headM": results.get("totalHead", {}).get("totalDynamicHead"),
            "motorKW": results.get("pumpSelection", {}).get("motorPowerKW"),
        }

    # -------------------------------------------------------------------------

    def _pipe(self, flow_lpm: float, consts, warnings: List[str]) -> Dict[str, Any]:
        flow_m3s = flow_lpm / 60000
        required = diameter_for_velocity(flow_m3s, consts["design_velocity"])
        selection = size_pipe(flow_m3s, consts["design_velocity"], self.catalog("phe_pipe_sizes"))
        size = selection.selected
        velocity = pipe_velocity(flow_m3s, size)
        compliant = consts["min_velocity"] <= velocity <= consts["max_velocity"]
        if selection.exceeded_catalog:
            warnings.append(f"Flow needs a {required:.0f}mm pipe, larger than the {size}mm maximum")
        elif flow_lpm > 0 and not compliant:
            warnings.append(f"Discharge velocity {velocity:.2f} m/s outside "
                            f"{consts['min_velocity']}-{consts['max_velocity']} m/s")
        return {
            "requiredDiaMM": round(required),
            "selectedSize": size,
            "actualVelocityMs": rnd(velocity),
            "velocityCompliant": compliant,
            "velocityRange": f"{consts['min_velocity']} - {consts['max_velocity']} m/s",
        }

    def _friction(self, flow_lpm, dia_mm, c_factor, pipe_length, fittings, consts) -> Dict[str, Any]:
        per_m = hazen_williams_loss(flow_lpm, dia_mm, c_factor)
        pipe_loss = per_m * pipe_length

        equiv_total = 0.0
        details = []
        for i, fitting in enumerate(fittings):
            ftype = text(fitting, "type", prefix=f"fittings[{i}].")
            count = integer(fitting, "count", 1, prefix=f"fittings[{i}].", minimum=0)
            diameters = self.lookup("phe_fitting_equivalent", ftype, consts["default_fitting_diameters"])
            equiv = diameters * dia_mm / 1000 * count
            equiv_total += equiv
            details.append({"type": ftype, "count": count, "equivLengthM": rnd(equiv)})
        fitting_loss = per_m * equiv_total

        return {
            "cFactor": c_factor,
            "frictionPerMeterM": rnd(per_m, 4),
            "pipeFrictionM": rnd(pipe_loss),
            "fittingEquivLengthM": rnd(equiv_total),
            "fittingFrictionM": rnd(fitting_loss),
            "totalLoss": rnd(pipe_loss + fitting_loss),
            "fittingDetails": details,
        }

    def _pump_type(self, application: str, flow_lpm: float, tdh: float, consts) -> str:
        if application in SEWAGE_APPLICATIONS:
            return "Submersible"
        if tdh > consts["multistage_above_head_m"]:
            return "Vertical Multistage"
        if flow_lpm > consts["split_case_above_lpm"]:
            return "Centrifugal Split Case"
        return "Centrifugal End Suction"

    def _pump(self, application, flow_lpm, tdh, consts, warnings: List[str]) -> Dict[str, Any]:
        pump_type = self._pump_type(application, flow_lpm, tdh, consts)
        spec = self.lookup("phe_pump_types", pump_type)
        low, high = spec["efficiency"]
        efficiency = (low + high) / 2
        if flow_lpm > spec["maxFlowLPM"] or tdh > spec["maxHeadM"]:
            warnings.append(f"Duty {flow_lpm:.0f} LPM at {tdh:.1f}m is outside the {pump_type} range")

        flow_m3s = flow_lpm / 60000
        hydraulic_kw = hydraulic_power_kw(flow_m3s, tdh, 1.0)
        shaft_kw = hydraulic_kw / efficiency
        motor = select(self.catalog("phe_motor_sizes"), shaft_kw * consts["motor_service_factor"])
        if motor.exceeded_catalog:
            warnings.append("Motor requirement exceeds the largest standard rating")

        return {
            "pumpType": pump_type,
            "efficiency": rnd(efficiency),
            "hydraulicPowerKW": rnd(hydraulic_kw),
            "calculatedPowerKW": rnd(shaft_kw),
            "motorPowerKW": motor.selected,
            "motorVoltage": "415V 3-phase" if motor.selected > consts["single_phase_max_kw"] else "230V 1-phase",
            "motorSpeed": consts["motor_speed_rpm"],
            "impellerType": "Open / Channel" if application == "Sewage" else "Closed",
        }

    def _npsh(self, atmospheric, suction_head, water_temp, suction_length, suction_dia,
              flow_lpm, c_factor, consts) -> Dict[str, Any]:
        temp_key, vapour = self.store.nearest("water_vapour_pressure", water_temp)
        suction_loss = hazen_williams_loss(flow_lpm, suction_dia, c_factor) * suction_length
        available = atmospheric - vapour + suction_head - suction_loss
        required = consts["npsh_required_m"]
        adequate = available >= required * consts["npsh_margin"]
        return {
            "atmosphericPressureM": atmospheric,
            "waterTemperatureBasis": temp_key,
            "vapourPressureM": rnd(vapour),
            "staticSuctionHeadM": suction_head,
            "suctionFrictionLossM": rnd(suction_loss),
            "npshAvailable": rnd(available),
            "npshRequired": required,
            "margin": rnd(available - required),
            "adequate": adequate,
            "recommendation": ("NPSH adequate" if adequate else
                               "Consider: flooded suction, larger suction pipe, or lower pump position"),
        }

    @staticmethod
    def _energy(motor_kw, pumps, hours, has_vfd, tariff, consts) -> Dict[str, Any]:
        factor = consts["vfd_energy_factor"] if has_vfd else 1.0
        daily = motor_kw * pumps * hours * factor
        annual = daily * 365
        saving = 1 - consts["vfd_energy_factor"]
        return {
            "dailyKWh": round(daily),
            "monthlyKWh": round(daily * 30),
            "annualKWh": round(annual),
            "tariffPerKWh": tariff,
            "annualCost": round(annual * tariff),
            "vfdSavingsPercent": round(saving * 100) if has_vfd else 0,
            "annualSavingsWithVFD": 0 if has_vfd else round(annual * saving * tariff),
        }
