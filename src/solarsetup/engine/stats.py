"""Aggregate electrical statistics for a setup.

:func:`compute_stats` is a pure function of the component snapshot and the
global assumptions. Unparsable properties never raise: they drop out of the
term that needs them, and sums treat missing contributions as zero.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Optional

from solarsetup.core.debug import DebugCollector, NullDebugCollector
from solarsetup.core.models import (
    ArrayConfig,
    Battery,
    Component,
    Inverter,
    Mppt,
    Panel,
    Setup,
    SystemInputs,
    index_by_id,
)
from solarsetup.core.parse import is_present, parse_number


@dataclass(frozen=True)
class Stats:
    total_solar_power_w: float
    estimated_daily_solar_production_wh: float
    total_battery_capacity_ah: float
    total_battery_energy_wh: float
    usable_battery_energy_wh: float
    total_inverter_power_w: float
    system_nominal_voltage: Optional[float]  # None -> N/A (no battery voltages)
    voltage_consistency_issue: bool
    energy_needed_adjusted_wh: float
    estimated_battery_autonomy_days: float
    daily_energy_balance_wh: float
    recharge_time_psh_days: float
    recharge_time_effective_sun_hours: float
    production_to_consumption_ratio_pct: Optional[float]  # None -> not applicable (no load)
    total_cost_usd: float
    panel_interconnect_cables: int | float
    array_to_charger_cables: int | float
    charger_to_battery_cables: int | float
    battery_interconnect_cables: int | float
    battery_to_inverter_cables: int | float
    total_estimated_cables: int | float

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def resolve_panel(array: ArrayConfig, by_id: Dict[str, Component]) -> Optional[Panel]:
    """Panel referenced by ``array``; dangling or wrong-kind ids resolve to None."""

    ref = by_id.get(array.properties.selectedPanelId)
    return ref if isinstance(ref, Panel) else None


def resolve_mppt(array: ArrayConfig, by_id: Dict[str, Component]) -> Optional[Mppt]:
    ref = by_id.get(array.properties.assignedMpptId)
    return ref if isinstance(ref, Mppt) else None


def array_power_w(array: ArrayConfig, panel: Panel) -> float:
    """STC power of one array, or ``nan`` if any factor is missing."""

    pmax = parse_number(panel.properties.pmax)
    in_series = parse_number(array.properties.panelsInSeries)
    strings = parse_number(array.properties.numberOfStrings)
    return pmax * in_series * strings


def _cable_counts(arrays: list, mppts: list, batteries: list, inverters: list) -> Dict[str, int | float]:
    # Primary power conductors only; no grounding, comms or gauge sizing.
    panel_interconnect = 0.0
    array_to_charger = 0.0
    for arr in arrays:
        in_series = parse_number(arr.properties.panelsInSeries)
        strings = parse_number(arr.properties.numberOfStrings)
        if is_present(in_series) and is_present(strings) and in_series >= 2 and strings >= 1:
            panel_interconnect += (in_series - 1) * strings
        if is_present(strings) and strings >= 1:
            array_to_charger += 2 * strings

    counts = {
        "panel_interconnect_cables": panel_interconnect,
        "array_to_charger_cables": array_to_charger,
        "charger_to_battery_cables": 2 * len(mppts),
        "battery_interconnect_cables": 2 * max(0, len(batteries) - 1),
        "battery_to_inverter_cables": 2 * len(inverters),
    }
    # Fractional counts only arise from fractional inputs; keep whole numbers as int.
    out = {k: int(v) if float(v).is_integer() else v for k, v in counts.items()}
    out["total_estimated_cables"] = sum(out.values())
    return out


def _total_cost(components: Iterable[Component]) -> float:
    total = 0.0
    for comp in components:
        if isinstance(comp, ArrayConfig):
            continue
        cost = parse_number(comp.properties.costUsd)
        if is_present(cost):
            total += cost
    return total


def compute_stats(
    components: Iterable[Component],
    inputs: SystemInputs,
    debug: DebugCollector | None = None,
) -> Stats:
    """Derive aggregate statistics from ``components`` and ``inputs``."""

    debug = debug or NullDebugCollector()
    components = list(components)
    by_id = index_by_id(components)
    arrays = [c for c in components if isinstance(c, ArrayConfig)]
    mppts = [c for c in components if isinstance(c, Mppt)]
    batteries = [c for c in components if isinstance(c, Battery)]
    inverters = [c for c in components if isinstance(c, Inverter)]

    total_solar_power = 0.0
    for arr in arrays:
        panel = resolve_panel(arr, by_id)
        if panel is None:
            continue
        power = array_power_w(arr, panel)
        if is_present(power):
            total_solar_power += power

    total_capacity = 0.0
    # dict keeps first-seen order; the first voltage is reported when they disagree
    voltages: Dict[float, None] = {}
    for bat in batteries:
        cap = parse_number(bat.properties.capacityAh)
        volts = parse_number(bat.properties.nominalVoltage)
        if is_present(cap):
            total_capacity += cap
        if is_present(volts):
            voltages.setdefault(volts, None)

    total_inverter_power = 0.0
    for inv in inverters:
        rated = parse_number(inv.properties.ratedPower)
        if is_present(rated):
            total_inverter_power += rated

    nominal_voltage = next(iter(voltages)) if voltages else None
    voltage_issue = len(voltages) > 1

    battery_energy = total_capacity * inputs.systemWideVoltage
    if not math.isfinite(battery_energy):
        battery_energy = 0.0
    daily_production = total_solar_power * inputs.peakSunHours * (inputs.solarPanelEfficiency / 100)
    usable_energy = battery_energy * (inputs.batteryDoD / 100)
    if inputs.estimatedDailyUsageWh > 0:
        energy_needed = inputs.estimatedDailyUsageWh / (inputs.inverterEfficiency / 100)
    else:
        energy_needed = 0.0

    autonomy = usable_energy / energy_needed if usable_energy > 0 and energy_needed > 0 else 0.0
    balance = daily_production - energy_needed

    recharge_hours = 0.0
    recharge_days = 0.0
    if total_solar_power > 0 and usable_energy > 0:
        recharge_hours = (battery_energy * (inputs.batteryDoD / 100)) / (
            total_solar_power * (inputs.solarPanelEfficiency / 100)
        )
        if inputs.peakSunHours > 0:
            recharge_days = recharge_hours / inputs.peakSunHours

    ratio: Optional[float]
    if energy_needed > 0:
        ratio = daily_production / energy_needed * 100
    elif daily_production > 0:
        ratio = None
    else:
        ratio = 0.0

    cables = _cable_counts(arrays, mppts, batteries, inverters)

    stats = Stats(
        total_solar_power_w=total_solar_power,
        estimated_daily_solar_production_wh=daily_production,
        total_battery_capacity_ah=total_capacity,
        total_battery_energy_wh=battery_energy,
        usable_battery_energy_wh=usable_energy,
        total_inverter_power_w=total_inverter_power,
        system_nominal_voltage=nominal_voltage,
        voltage_consistency_issue=voltage_issue,
        energy_needed_adjusted_wh=energy_needed,
        estimated_battery_autonomy_days=autonomy,
        daily_energy_balance_wh=balance,
        recharge_time_psh_days=recharge_days,
        recharge_time_effective_sun_hours=recharge_hours,
        production_to_consumption_ratio_pct=ratio,
        total_cost_usd=_total_cost(components),
        **cables,
    )
    _emit_summary(debug, stats, len(components))
    return stats


def stats_for(setup: Setup, debug: DebugCollector | None = None) -> Stats:
    return compute_stats(setup.components, setup.inputs, debug=debug)


def _emit_summary(debug: DebugCollector, stats: Stats, n_components: int) -> None:
    payload = {
        "components": n_components,
        "total_solar_power_w": stats.total_solar_power_w,
        "daily_production_wh": stats.estimated_daily_solar_production_wh,
        "battery_energy_wh": stats.total_battery_energy_wh,
        "autonomy_days": stats.estimated_battery_autonomy_days,
        "voltage_consistency_issue": stats.voltage_consistency_issue,
        "total_estimated_cables": stats.total_estimated_cables,
    }
    debug.emit("stats.summary", payload)


__all__ = [
    "Stats",
    "compute_stats",
    "stats_for",
    "resolve_panel",
    "resolve_mppt",
    "array_power_w",
]
