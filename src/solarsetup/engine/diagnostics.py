"""Compatibility diagnostics for a setup.

The engine is a fixed, ordered list of rules. Each rule reads the same
immutable context and appends zero or more messages; the output order is the
rule order, not severity. A missing or unparsable property only disables the
check that needs it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Tuple

from solarsetup.core.debug import DebugCollector, NullDebugCollector
from solarsetup.core.models import (
    ArrayConfig,
    Battery,
    Component,
    Inverter,
    Mppt,
    Panel,
    SystemInputs,
    index_by_id,
)
from solarsetup.core.parse import fixed, format_number, is_present, parse_number
from solarsetup.engine.stats import Stats, resolve_mppt, resolve_panel

VOC_SAFETY_MARGIN_FACTOR_MIN = 1.10
VOC_SAFETY_MARGIN_FACTOR_IDEAL = 1.20
NEAR_LIMIT_FRACTION = 0.9
CLIPPING_SIGNIFICANT_FACTOR = 1.25
INVERTER_VOLTAGE_BAND = 0.05
MIN_AUTONOMY_DAYS = 0.5
PRODUCTION_DEFICIT_PCT = 80
PRODUCTION_SURPLUS_PCT = 150


class MessageLevel(str, Enum):
    ERROR = "error"
    WARN_SAFETY = "warn-safety"
    WARN_SIZING = "warn-sizing"
    WARN_C_RATE = "warn-c-rate"
    WARN = "warn"
    INFO_SAFETY = "info-safety"
    INFO = "info"

    @property
    def prefix(self) -> str:
        return _PREFIX[self]

    @property
    def is_warning(self) -> bool:
        return self.value.startswith("warn")

    @property
    def severity(self) -> int:
        """2 for errors, 1 for any warning, 0 for notes; for post-hoc grouping."""
        if self is MessageLevel.ERROR:
            return 2
        return 1 if self.is_warning else 0


_PREFIX = {
    MessageLevel.ERROR: "Error:",
    MessageLevel.WARN_SAFETY: "Warning (Safety Margin):",
    MessageLevel.WARN_SIZING: "Warning (Sizing):",
    MessageLevel.WARN_C_RATE: "Warning (C-Rate):",
    MessageLevel.WARN: "Warning:",
    MessageLevel.INFO_SAFETY: "Info (Safety Margin):",
    MessageLevel.INFO: "Info:",
}


@dataclass(frozen=True)
class CategorizedMessage:
    level: MessageLevel
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level.value, "text": self.text}


@dataclass(frozen=True)
class _Context:
    components: Tuple[Component, ...]
    by_id: Dict[str, Component]
    stats: Stats
    inputs: SystemInputs
    arrays: Tuple[ArrayConfig, ...]
    mppts: Tuple[Mppt, ...]
    batteries: Tuple[Battery, ...]
    inverters: Tuple[Inverter, ...]


@dataclass
class _Messages:
    items: List[CategorizedMessage] = field(default_factory=list)

    def add(self, level: MessageLevel, text: str) -> None:
        self.items.append(CategorizedMessage(level, f"{level.prefix} {text}"))


def _empty_system(ctx: _Context, out: _Messages) -> None:
    if not ctx.components:
        out.add(MessageLevel.INFO, "Add components to start tracking your solar setup!")


def _mixed_battery_voltages(ctx: _Context, out: _Messages) -> None:
    if ctx.stats.voltage_consistency_issue:
        out.add(MessageLevel.ERROR, "Mixed battery voltages detected – unify bank voltage.")


def _unassigned_arrays(ctx: _Context, out: _Messages) -> None:
    unassigned = [a for a in ctx.arrays if resolve_mppt(a, ctx.by_id) is None]
    if not unassigned:
        return
    if ctx.mppts:
        out.add(MessageLevel.WARN, f"{len(unassigned)} solar array(s) not assigned to any MPPT.")
    else:
        out.add(
            MessageLevel.INFO,
            f"{len(unassigned)} solar array(s) present but no MPPT controllers added; their power path is undefined.",
        )


def _array_voc_margin(arr: ArrayConfig, panel: Panel, mppt: Mppt, max_input_v: float, out: _Messages) -> None:
    voc = parse_number(panel.properties.voc)
    in_series = parse_number(arr.properties.panelsInSeries)
    if not (is_present(voc) and is_present(in_series) and is_present(max_input_v)):
        return
    array_voc = voc * in_series
    limit = format_number(max_input_v)
    if array_voc > max_input_v:
        out.add(
            MessageLevel.ERROR,
            f"{arr.name} Voc ({fixed(array_voc, 1)}V) exceeds {mppt.name} max input voltage ({limit}V).",
        )
    elif array_voc * VOC_SAFETY_MARGIN_FACTOR_MIN > max_input_v:
        out.add(
            MessageLevel.WARN_SAFETY,
            f"{arr.name} Voc headroom below minimum recommended 10% margin relative to {mppt.name} "
            f"({fixed(array_voc, 1)}V vs {limit}V).",
        )
    elif array_voc * VOC_SAFETY_MARGIN_FACTOR_IDEAL > max_input_v:
        out.add(
            MessageLevel.INFO_SAFETY,
            f"{arr.name} Voc margin < ideal 20% but >= minimum 10% "
            f"(Voc {fixed(array_voc, 1)}V, MPPT max {limit}V).",
        )


def _controllers(ctx: _Context, out: _Messages) -> None:
    for mppt in ctx.mppts:
        max_input_v = parse_number(mppt.properties.maxInputVoltage)
        max_input_i = parse_number(mppt.properties.maxInputCurrent)
        max_out_i = parse_number(mppt.properties.maxOutputCurrent)
        batt_v = parse_number(mppt.properties.nominalBatteryVoltage)

        assigned = [a for a in ctx.arrays if a.properties.assignedMpptId == mppt.id]
        if not assigned:
            out.add(MessageLevel.WARN, f"{mppt.name} has no assigned solar arrays.")

        aggregate_isc = 0.0
        aggregate_pmax = 0.0
        for arr in assigned:
            panel = resolve_panel(arr, ctx.by_id)
            if panel is None:
                continue
            isc = parse_number(panel.properties.isc)
            pmax = parse_number(panel.properties.pmax)
            in_series = parse_number(arr.properties.panelsInSeries)
            strings = parse_number(arr.properties.numberOfStrings)
            if is_present(isc) and is_present(strings):
                aggregate_isc += isc * strings
            if is_present(pmax) and is_present(in_series) and is_present(strings):
                aggregate_pmax += pmax * in_series * strings
            _array_voc_margin(arr, panel, mppt, max_input_v, out)

        if is_present(max_input_i) and max_input_i > 0:
            limit = format_number(max_input_i)
            if aggregate_isc > max_input_i:
                out.add(
                    MessageLevel.ERROR,
                    f"{mppt.name} total array Isc ({fixed(aggregate_isc, 2)}A) exceeds max input current ({limit}A).",
                )
            elif aggregate_isc > max_input_i * NEAR_LIMIT_FRACTION:
                out.add(
                    MessageLevel.WARN_SIZING,
                    f"{mppt.name} total array Isc ({fixed(aggregate_isc, 2)}A) >90% of max ({limit}A).",
                )

        if is_present(max_out_i) and is_present(batt_v) and max_out_i > 0 and batt_v > 0:
            capacity = max_out_i * batt_v
            if aggregate_pmax > capacity * CLIPPING_SIGNIFICANT_FACTOR:
                out.add(
                    MessageLevel.WARN_SIZING,
                    f"{mppt.name} array power ({fixed(aggregate_pmax, 0)}W) >125% of est output capacity "
                    f"(~{fixed(capacity, 0)}W). Significant clipping likely.",
                )
            elif aggregate_pmax > capacity:
                out.add(
                    MessageLevel.INFO,
                    f"{mppt.name} slightly over-provisioned (array {fixed(aggregate_pmax, 0)}W vs "
                    f"~{fixed(capacity, 0)}W). Minor clipping expected.",
                )


def _battery_current_rates(ctx: _Context, out: _Messages) -> None:
    # Every controller counts, assigned or not.
    total_mppt_output = 0.0
    for mppt in ctx.mppts:
        amps = parse_number(mppt.properties.maxOutputCurrent)
        if is_present(amps):
            total_mppt_output += amps

    for bat in ctx.batteries:
        capacity = parse_number(bat.properties.capacityAh)
        max_charge = parse_number(bat.properties.maxChargeCurrent)
        max_discharge = parse_number(bat.properties.maxDischargeCurrent)
        nominal_v = parse_number(bat.properties.nominalVoltage)
        if not (is_present(capacity) and capacity > 0):
            continue

        if is_present(max_charge) and max_charge > 0:
            limit = format_number(max_charge)
            if total_mppt_output > max_charge:
                out.add(
                    MessageLevel.ERROR,
                    f"{bat.name} potential charge current ({fixed(total_mppt_output, 1)}A) exceeds max charge current ({limit}A).",
                )
            elif total_mppt_output > max_charge * NEAR_LIMIT_FRACTION:
                out.add(
                    MessageLevel.WARN_C_RATE,
                    f"{bat.name} charge current near limit ({fixed(total_mppt_output, 1)}A / {limit}A).",
                )

        if is_present(max_discharge) and max_discharge > 0 and is_present(nominal_v) and nominal_v > 0:
            discharge = ctx.stats.total_inverter_power_w / nominal_v
            limit = format_number(max_discharge)
            if discharge > max_discharge:
                out.add(
                    MessageLevel.ERROR,
                    f"{bat.name} estimated discharge current ({fixed(discharge, 1)}A) exceeds max discharge current ({limit}A).",
                )
            elif discharge > max_discharge * NEAR_LIMIT_FRACTION:
                out.add(
                    MessageLevel.WARN_C_RATE,
                    f"{bat.name} discharge current near limit ({fixed(discharge, 1)}A / {limit}A).",
                )


def _inverter_input_window(ctx: _Context, out: _Messages) -> None:
    sys_v = ctx.inputs.systemWideVoltage
    volts = format_number(sys_v)
    for inv in ctx.inverters:
        v_min = parse_number(inv.properties.inputVoltageMin)
        v_max = parse_number(inv.properties.inputVoltageMax)
        if is_present(v_min):
            if sys_v < v_min:
                out.add(
                    MessageLevel.ERROR,
                    f"{inv.name} system voltage ({volts}V) below inverter minimum ({format_number(v_min)}V).",
                )
            elif sys_v < v_min * (1 + INVERTER_VOLTAGE_BAND):
                out.add(
                    MessageLevel.WARN_SIZING,
                    f"{inv.name} system voltage ({volts}V) within 5% of minimum ({format_number(v_min)}V).",
                )
        if is_present(v_max):
            if sys_v > v_max:
                out.add(
                    MessageLevel.ERROR,
                    f"{inv.name} system voltage ({volts}V) exceeds inverter maximum ({format_number(v_max)}V).",
                )
            elif sys_v > v_max * (1 - INVERTER_VOLTAGE_BAND):
                out.add(
                    MessageLevel.WARN_SIZING,
                    f"{inv.name} system voltage ({volts}V) within 5% of maximum ({format_number(v_max)}V).",
                )


def _production_sanity(ctx: _Context, out: _Messages) -> None:
    stats = ctx.stats
    if stats.total_solar_power_w == 0 and ctx.arrays:
        out.add(MessageLevel.WARN, "Arrays configured but no valid panel pmax values.")
    if ctx.inputs.estimatedDailyUsageWh == 0 and ctx.components:
        out.add(MessageLevel.WARN, "Daily usage is 0; production metrics may be misleading.")
    if 0 < stats.estimated_battery_autonomy_days < MIN_AUTONOMY_DAYS:
        out.add(MessageLevel.WARN_SIZING, "Battery autonomy < 0.5 days; consider more storage or reducing load.")
    ratio = stats.production_to_consumption_ratio_pct
    if ratio is not None and ctx.components:
        if ratio < PRODUCTION_DEFICIT_PCT:
            out.add(MessageLevel.WARN_SIZING, "Solar production <80% of adjusted consumption; expect deficit.")
        elif ratio > PRODUCTION_SURPLUS_PCT:
            out.add(
                MessageLevel.INFO,
                "Solar production >150% of adjusted consumption; consider more storage or curtailment strategy.",
            )


def _general_notes(ctx: _Context, out: _Messages) -> None:
    out.add(MessageLevel.INFO, "Calculations assume ideal wiring; account for voltage drop, temperature, and conversion losses.")
    out.add(
        MessageLevel.INFO_SAFETY,
        "Always size conductors and protection (fuses/breakers) to NEC/IEC standards and manufacturer specs.",
    )


def _rollup(ctx: _Context, out: _Messages) -> None:
    if not ctx.components:
        return
    levels = [m.level for m in out.items]
    if MessageLevel.ERROR in levels:
        out.add(MessageLevel.ERROR, "Critical errors found! Resolve red items first; then address warnings.")
    elif any(level.is_warning for level in levels):
        out.add(MessageLevel.WARN, "Warnings present. System may operate but with risk/inefficiency. Review above notes.")
    else:
        out.add(MessageLevel.INFO, "System configuration appears compatible based on current checks.")


Rule = Callable[[_Context, _Messages], None]

RULES: Tuple[Tuple[str, Rule], ...] = (
    ("empty_system", _empty_system),
    ("mixed_battery_voltages", _mixed_battery_voltages),
    ("unassigned_arrays", _unassigned_arrays),
    ("controllers", _controllers),
    ("battery_current_rates", _battery_current_rates),
    ("inverter_input_window", _inverter_input_window),
    ("production_sanity", _production_sanity),
    ("general_notes", _general_notes),
    ("rollup", _rollup),
)


def run_diagnostics(
    components: Iterable[Component],
    stats: Stats,
    inputs: SystemInputs,
    debug: DebugCollector | None = None,
) -> List[CategorizedMessage]:
    """Run every rule in order and return the messages they produced."""

    debug = debug or NullDebugCollector()
    comps = tuple(components)
    ctx = _Context(
        components=comps,
        by_id=index_by_id(comps),
        stats=stats,
        inputs=inputs,
        arrays=tuple(c for c in comps if isinstance(c, ArrayConfig)),
        mppts=tuple(c for c in comps if isinstance(c, Mppt)),
        batteries=tuple(c for c in comps if isinstance(c, Battery)),
        inverters=tuple(c for c in comps if isinstance(c, Inverter)),
    )
    out = _Messages()
    for name, rule in RULES:
        before = len(out.items)
        rule(ctx, out)
        added = out.items[before:]
        debug.emit("diagnostics.rule", {"rule": name, "emitted": [m.level.value for m in added]})

    _emit_summary(debug, out.items)
    return list(out.items)


def group_by_severity(messages: Iterable[CategorizedMessage]) -> Dict[str, List[CategorizedMessage]]:
    """Group messages into errors/warnings/notes, keeping rule order inside each group."""

    groups: Dict[str, List[CategorizedMessage]] = {"errors": [], "warnings": [], "notes": []}
    names = {2: "errors", 1: "warnings", 0: "notes"}
    for msg in messages:
        groups[names[msg.level.severity]].append(msg)
    return groups


def _emit_summary(debug: DebugCollector, messages: List[CategorizedMessage]) -> None:
    counts: Dict[str, int] = {}
    for msg in messages:
        counts[msg.level.value] = counts.get(msg.level.value, 0) + 1
    debug.emit("diagnostics.summary", {"total": len(messages), "by_level": counts})


__all__ = [
    "MessageLevel",
    "CategorizedMessage",
    "RULES",
    "run_diagnostics",
    "group_by_severity",
    "VOC_SAFETY_MARGIN_FACTOR_MIN",
    "VOC_SAFETY_MARGIN_FACTOR_IDEAL",
]
