"""
Hydraulic helpers shared by the pump and fire calculators.
"""

import math
from typing import Sequence

from ..engine import Selection, select

GRAVITY = 9.81
WATER_DENSITY = 1000.0
M_HEAD_PER_BAR = 10.2


def hazen_williams_loss(flow_lpm: float, pipe_dia_mm: float, c_factor: float) -> float:
    """
    Friction loss per metre of pipe (m head / m).

    Hazen-Williams in the fire-protection form
    p = 6.05e5 * Q^1.85 / (C^1.85 * d^4.87) bar/m, Q in L/min, d in mm.
    """
    if flow_lpm <= 0:
        return 0.0
    bar_per_m = 6.05e5 * flow_lpm ** 1.852 / (c_factor ** 1.852 * pipe_dia_mm ** 4.87)
    return bar_per_m * M_HEAD_PER_BAR


def diameter_for_velocity(flow_m3s: float, velocity: float) -> float:
    """Internal diameter (mm) carrying flow at the given velocity."""
    if velocity <= 0:
        raise ValueError("Design velocity must be positive")
    return math.sqrt(flow_m3s / velocity * 4 / math.pi) * 1000


def pipe_velocity(flow_m3s: float, dia_mm: float) -> float:
    area = math.pi * (dia_mm / 1000) ** 2 / 4
    return flow_m3s / area


def size_pipe(flow_m3s: float, velocity: float, catalog: Sequence) -> Selection:
    """Smallest standard pipe that keeps velocity at or below the target."""
    return select(catalog, diameter_for_velocity(flow_m3s, velocity))


def hydraulic_power_kw(flow_m3s: float, head_m: float, efficiency: float) -> float:
    """Shaft power P = rho g Q H / eta (kW)."""
    if efficiency <= 0:
        raise ValueError("Pump efficiency must be positive")
    return WATER_DENSITY * GRAVITY * flow_m3s * head_m / (efficiency * 1000)
