"""
MEP Calculators

One calculator per CalculationType, all sharing the Calculator contract.
default_registry() builds the closed set used by the record manager and
the CLI.
"""

from typing import List, Optional, Type

from ..engine.tables import ReferenceTableStore
from .base import CalculationType, Calculator
from .registry import CalculatorRegistry, build_registry

from .electrical_load import ElectricalLoadCalculator
from .hvac_load import HVACLoadCalculator
from .fire_pump import FirePumpCalculator
from .cable_selection import CableSelectionCalculator
from .lighting_design import LightingDesignCalculator
from .earthing_lightning import EarthingLightningCalculator
from .phe_pump import PHEPumpCalculator
from .plumbing_fixture import PlumbingFixtureCalculator
from .ventilation import VentilationCalculator
from .duct_sizing import DuctSizingCalculator
from .panel_schedule import PanelScheduleCalculator
from .rising_main import RisingMainCalculator
from .fire_fighting import FireFightingCalculator

# Registry order follows CalculationType
ALL_CALCULATORS: List[Type[Calculator]] = [
    ElectricalLoadCalculator,
    HVACLoadCalculator,
    FirePumpCalculator,
    CableSelectionCalculator,
    LightingDesignCalculator,
    EarthingLightningCalculator,
    PHEPumpCalculator,
    PlumbingFixtureCalculator,
    VentilationCalculator,
    DuctSizingCalculator,
    PanelScheduleCalculator,
    RisingMainCalculator,
    FireFightingCalculator,
]


def default_registry(store: Optional[ReferenceTableStore] = None) -> CalculatorRegistry:
    """Registry with every calculator, sharing one reference table store."""
    return build_registry(ALL_CALCULATORS, store)


__all__ = [
    "CalculationType",
    "Calculator",
    "CalculatorRegistry",
    "ALL_CALCULATORS",
    "build_registry",
    "default_registry",
    "ElectricalLoadCalculator",
    "HVACLoadCalculator",
    "FirePumpCalculator",
    "CableSelectionCalculator",
    "LightingDesignCalculator",
    "EarthingLightningCalculator",
    "PHEPumpCalculator",
    "PlumbingFixtureCalculator",
    "VentilationCalculator",
    "DuctSizingCalculator",
    "PanelScheduleCalculator",
    "RisingMainCalculator",
    "FireFightingCalculator",
]
