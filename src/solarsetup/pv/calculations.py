"""Closed-form PV helpers: temperature derating, wiring loss, ageing and economics.

These are first-order approximations used for planning, not simulation.
Invalid inputs give ``nan`` (or the input unchanged, for derating) instead of
raising, matching how the engine treats incomplete data.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

STC_CELL_TEMP_C = 25.0
DEFAULT_OPERATING_CELL_TEMP_C = 45.0
DEFAULT_TEMP_COEFF_VOC_PCT = -0.28
DEFAULT_TEMP_COEFF_PMAX_PCT = -0.35
COPPER_RESISTIVITY_OHM_MM2_PER_M = 0.017241
MAX_PAYBACK_YEARS = 50


@dataclass(frozen=True)
class TemperatureInputs:
    coefficient_voc_pct_per_c: float = DEFAULT_TEMP_COEFF_VOC_PCT
    coefficient_pmax_pct_per_c: float = DEFAULT_TEMP_COEFF_PMAX_PCT
    stc_cell_temp_c: float = STC_CELL_TEMP_C
    actual_cell_temp_c: float = DEFAULT_OPERATING_CELL_TEMP_C


def adjust_for_temperature(value: float, coeff_pct_per_c: float, delta_c: float) -> float:
    """Scale ``value`` linearly by a %/°C coefficient over ``delta_c`` degrees."""

    if not all(math.isfinite(v) for v in (value, coeff_pct_per_c, delta_c)):
        return value
    return value * (1 + (coeff_pct_per_c / 100) * delta_c)


def effective_voc(voc_stc: float, inputs: TemperatureInputs | None = None) -> float:
    inputs = inputs or TemperatureInputs()
    delta = inputs.actual_cell_temp_c - inputs.stc_cell_temp_c
    return adjust_for_temperature(voc_stc, inputs.coefficient_voc_pct_per_c, delta)


def effective_pmax(pmax_stc: float, inputs: TemperatureInputs | None = None) -> float:
    inputs = inputs or TemperatureInputs()
    delta = inputs.actual_cell_temp_c - inputs.stc_cell_temp_c
    return adjust_for_temperature(pmax_stc, inputs.coefficient_pmax_pct_per_c, delta)


def voltage_drop(
    current_a: float,
    one_way_length_m: float,
    cross_section_mm2: float,
    system_voltage: float,
    resistivity_ohm_mm2_per_m: float = COPPER_RESISTIVITY_OHM_MM2_PER_M,
) -> Tuple[float, float]:
    """Return ``(drop_v, drop_pct)`` for a two-conductor DC run.

    The conductor loop is out and back, so twice the one-way length.
    """

    params = (current_a, one_way_length_m, resistivity_ohm_mm2_per_m, cross_section_mm2, system_voltage)
    if any(not math.isfinite(v) or v <= 0 for v in params):
        return math.nan, math.nan
    resistance = resistivity_ohm_mm2_per_m * (one_way_length_m * 2) / cross_section_mm2
    drop_v = current_a * resistance
    return drop_v, drop_v / system_voltage * 100


def linear_degradation(initial_value: float, annual_degradation_pct: float, years: int) -> pd.Series:
    """Output for years ``0..years`` under linear annual degradation."""

    year_idx = np.arange(0, max(0, int(years)) + 1)
    values = initial_value * (1 - (annual_degradation_pct / 100) * year_idx)
    return pd.Series(values, index=pd.Index(year_idx, name="year"), name="value")


def simple_payback(
    system_cost: float,
    annual_energy_kwh: float,
    grid_rate_per_kwh: float,
    annual_escalation_pct: float = 0.0,
) -> float:
    """Whole years until cumulative savings cover ``system_cost``; ``nan`` past 50 years."""

    remaining = system_cost
    year = 0
    rate = grid_rate_per_kwh
    while remaining > 0 and year < MAX_PAYBACK_YEARS:
        remaining -= annual_energy_kwh * rate
        year += 1
        rate *= 1 + annual_escalation_pct / 100
    return float(year) if remaining <= 0 else math.nan


def lcoe(system_cost: float, total_lifetime_kwh: float) -> float:
    """Levelized cost of energy in currency per kWh."""

    if not math.isfinite(system_cost) or not math.isfinite(total_lifetime_kwh) or total_lifetime_kwh <= 0:
        return math.nan
    return system_cost / total_lifetime_kwh


__all__ = [
    "TemperatureInputs",
    "adjust_for_temperature",
    "effective_voc",
    "effective_pmax",
    "voltage_drop",
    "linear_degradation",
    "simple_payback",
    "lcoe",
]
