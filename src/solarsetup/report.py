"""Render an evaluation as plain text or a JSON-ready mapping.

Numbers are formatted here with fixed decimals; the engine hands over raw
floats and already-interpolated message text.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, List

from solarsetup.core.config import setup_to_dict
from solarsetup.core.models import Setup
from solarsetup.core.parse import fixed, format_number
from solarsetup.engine import Evaluation

NA = "N/A"


def _ratio_text(ratio: float | None) -> str:
    return "N/A (No load)" if ratio is None else f"{fixed(ratio, 1)}%"


def statistics_lines(evaluation: Evaluation) -> List[str]:
    s = evaluation.stats
    nominal = NA if s.system_nominal_voltage is None else format_number(s.system_nominal_voltage)
    if s.voltage_consistency_issue:
        nominal += " (Error: Mixed battery voltages!)"
    return [
        f"Total Solar Array Power: {fixed(s.total_solar_power_w, 2)} W",
        f"Estimated Daily Solar Production: {fixed(s.estimated_daily_solar_production_wh, 2)} Wh "
        f"({fixed(s.estimated_daily_solar_production_wh / 1000, 2)} kWh/day)",
        f"Total Battery Capacity: {fixed(s.total_battery_capacity_ah, 2)} Ah",
        f"Total Battery Energy: {fixed(s.total_battery_energy_wh, 2)} Wh ({fixed(s.total_battery_energy_wh / 1000, 2)} kWh)",
        f"Total Inverter Rated Power: {fixed(s.total_inverter_power_w, 2)} W",
        f"System Nominal Voltage: {nominal}",
        f"Estimated Battery Autonomy: {fixed(s.estimated_battery_autonomy_days, 2)} Days",
        f"Daily Energy Balance: {fixed(s.daily_energy_balance_wh, 2)} Wh ({fixed(s.daily_energy_balance_wh / 1000, 2)} kWh)",
        f"Est. Battery Recharge Time (from DoD): {fixed(s.recharge_time_psh_days, 2)} PSH-Days "
        f"({fixed(s.recharge_time_effective_sun_hours, 2)} effective sun hours)",
        f"Solar Production vs. Consumption: {fixed(s.estimated_daily_solar_production_wh, 2)} Wh / "
        f"{fixed(s.energy_needed_adjusted_wh, 2)} Wh = {_ratio_text(s.production_to_consumption_ratio_pct)}",
        f"Total Component Cost: {fixed(s.total_cost_usd, 2)} USD",
    ]


def cable_lines(evaluation: Evaluation) -> List[str]:
    s = evaluation.stats
    return [
        f"Panel Interconnect Cables: {format_number(s.panel_interconnect_cables)}",
        f"Array to Charger Cables (pos/neg pairs per string): {format_number(s.array_to_charger_cables)}",
        f"Charger to Battery Cables: {format_number(s.charger_to_battery_cables)}",
        f"Battery Interconnect Cables: {format_number(s.battery_interconnect_cables)}",
        f"Battery to Inverter Cables: {format_number(s.battery_to_inverter_cables)}",
        f"Total Estimated Primary Cables: {format_number(s.total_estimated_cables)}",
    ]


def render_text(setup: Setup, evaluation: Evaluation) -> str:
    out: List[str] = ["Solar System Report", ""]
    if setup.notes:
        out += ["Notes", "-----", setup.notes, ""]
    out += ["System Inputs", "-------------"]
    out += [f"{k}: {format_number(v)}" for k, v in setup.inputs.to_dict().items()]
    out += ["", "Key Statistics", "--------------"]
    out += statistics_lines(evaluation)
    out += ["", "Cable Count Estimate", "--------------------"]
    out += cable_lines(evaluation)
    out.append("Simplified count of primary power connection cables. Does not include grounding, communication, or exact lengths/gauges.")
    out += ["", "Compatibility Checks & Notes", "----------------------------"]
    out += [f"- {m.text}" for m in evaluation.messages]
    return "\n".join(out) + "\n"


def evaluation_to_dict(setup: Setup, evaluation: Evaluation) -> Dict[str, Any]:
    data: Dict[str, Any] = OrderedDict()
    data["setup"] = setup_to_dict(setup)
    data["stats"] = evaluation.stats.to_dict()
    data["messages"] = [m.to_dict() for m in evaluation.messages]
    data["has_errors"] = evaluation.has_errors
    return data


__all__ = ["render_text", "evaluation_to_dict", "statistics_lines", "cable_lines"]
