from builders import array, battery, inverter, mppt, panel
from solarsetup.core.models import Setup, SystemInputs
from solarsetup.engine import evaluate
from solarsetup.engine.diagnostics import (
    VOC_SAFETY_MARGIN_FACTOR_MIN,
    MessageLevel,
    group_by_severity,
)


def _messages(components, **inputs):
    return evaluate(Setup(components=tuple(components), inputs=SystemInputs(**inputs))).messages


def _levels(messages):
    return [m.level for m in messages]


def _matching(messages, needle):
    return [m for m in messages if needle in m.text]


def _compatible_system():
    return [
        panel(voc="40", isc="10", pmax="400"),
        mppt(maxInputVoltage="100", maxInputCurrent="15", maxOutputCurrent="40", nominalBatteryVoltage="48"),
        array(series="2", strings="1", mppt_id="m1"),
        battery(nominalVoltage="48", capacityAh="200", maxChargeCurrent="100", maxDischargeCurrent="100"),
        inverter(inputVoltageMin="40", inputVoltageMax="60", ratedPower="1000"),
    ]


def test_empty_system_messages():
    messages = _messages([])
    assert [m.text for m in messages] == [
        "Info: Add components to start tracking your solar setup!",
        "Info: Calculations assume ideal wiring; account for voltage drop, temperature, and conversion losses.",
        "Info (Safety Margin): Always size conductors and protection (fuses/breakers) to NEC/IEC standards and manufacturer specs.",
    ]
    assert _levels(messages) == [MessageLevel.INFO, MessageLevel.INFO, MessageLevel.INFO_SAFETY]


def test_compatible_system_rolls_up_to_info():
    messages = _messages(_compatible_system(), estimatedDailyUsageWh=2250)
    assert _levels(messages) == [MessageLevel.INFO, MessageLevel.INFO_SAFETY, MessageLevel.INFO]
    assert messages[-1].text == "Info: System configuration appears compatible based on current checks."


def test_mixed_battery_voltages_single_error():
    messages = _messages([battery(id="b1", nominalVoltage="12"), battery(id="b2", nominalVoltage="24")])
    mixed = _matching(messages, "Mixed battery voltages")
    assert len(mixed) == 1
    assert mixed[0].level is MessageLevel.ERROR
    assert messages[0] is mixed[0]
    assert messages[-1].text.startswith("Error: Critical errors found!")


def test_unassigned_arrays_without_controllers_is_info():
    messages = _messages([panel(pmax="200"), array(series="2", strings="2")])
    (msg,) = _matching(messages, "power path is undefined")
    assert msg.level is MessageLevel.INFO
    assert msg.text == "Info: 1 solar array(s) present but no MPPT controllers added; their power path is undefined."
    assert not _matching(messages, "not assigned to any MPPT")


def test_unassigned_arrays_with_controller_is_warning():
    comps = [panel(pmax="200"), mppt(), array(id="a1", mppt_id=""), array(id="a2", mppt_id="gone")]
    messages = _messages(comps)
    (msg,) = _matching(messages, "not assigned to any MPPT")
    assert msg.level is MessageLevel.WARN
    assert msg.text == "Warning: 2 solar array(s) not assigned to any MPPT."


def test_controller_without_arrays_warns():
    messages = _messages([mppt()])
    (msg,) = _matching(messages, "has no assigned solar arrays")
    assert msg.text == "Warning: MPPT m1 has no assigned solar arrays."


def test_voc_over_limit_is_error_and_skips_margins():
    comps = [panel(voc="40"), mppt(maxInputVoltage="150"), array(series="4", mppt_id="m1")]
    messages = _messages(comps, estimatedDailyUsageWh=1000)
    voc_errors = _matching(messages, "max input voltage")
    assert len(voc_errors) == 1
    assert voc_errors[0].level is MessageLevel.ERROR
    assert voc_errors[0].text == "Error: Array a1 Voc (160.0V) exceeds MPPT m1 max input voltage (150V)."
    assert MessageLevel.WARN_SAFETY not in _levels(messages)
    assert MessageLevel.INFO_SAFETY not in _levels(messages[:-2])


def test_voc_margin_exactly_at_minimum_is_not_a_warning():
    limit = 10 * VOC_SAFETY_MARGIN_FACTOR_MIN
    comps = [panel(voc="10"), mppt(maxInputVoltage=repr(limit)), array(series="1", mppt_id="m1")]
    levels = _levels(_messages(comps))
    assert MessageLevel.WARN_SAFETY not in levels
    assert levels.count(MessageLevel.INFO_SAFETY) == 2  # margin note + general reminder

    comps[0] = panel(voc="11")
    levels = _levels(_messages(comps))
    assert MessageLevel.WARN_SAFETY in levels
    assert MessageLevel.ERROR not in levels


def test_voc_margin_warning_text():
    comps = [panel(voc="46"), mppt(maxInputVoltage="100"), array(series="2", mppt_id="m1")]
    (msg,) = _matching(_messages(comps), "headroom")
    assert msg.text == (
        "Warning (Safety Margin): Array a1 Voc headroom below minimum recommended 10% margin "
        "relative to MPPT m1 (92.0V vs 100V)."
    )


def test_isc_checks():
    comps = [panel(isc="10"), mppt(maxInputCurrent="18"), array(strings="2", mppt_id="m1")]
    (msg,) = _matching(_messages(comps), "Isc")
    assert msg.level is MessageLevel.ERROR
    assert msg.text == "Error: MPPT m1 total array Isc (20.00A) exceeds max input current (18A)."

    comps[1] = mppt(maxInputCurrent="21")
    (msg,) = _matching(_messages(comps), "Isc")
    assert msg.level is MessageLevel.WARN_SIZING


def test_clipping_checks():
    comps = [panel(pmax="200"), mppt(maxOutputCurrent="10", nominalBatteryVoltage="24"), array(series="2", strings="2", mppt_id="m1")]
    (msg,) = _matching(_messages(comps), "clipping")
    assert msg.level is MessageLevel.WARN_SIZING
    assert msg.text == "Warning (Sizing): MPPT m1 array power (800W) >125% of est output capacity (~240W). Significant clipping likely."

    comps[1] = mppt(maxOutputCurrent="30", nominalBatteryVoltage="24")
    (msg,) = _matching(_messages(comps), "clipping")
    assert msg.level is MessageLevel.INFO
    assert msg.text == "Info: MPPT m1 slightly over-provisioned (array 800W vs ~720W). Minor clipping expected."


def test_unresolved_panel_skips_array_checks():
    comps = [mppt(maxInputVoltage="10", maxInputCurrent="1"), array(panel_id="missing", mppt_id="m1")]
    messages = _messages(comps)
    assert not _matching(messages, "Voc")
    assert not _matching(messages, "Isc")


def test_charge_current_counts_every_controller():
    comps = [
        mppt(id="m1", maxOutputCurrent="40"),
        mppt(id="m2", maxOutputCurrent="30"),
        battery(capacityAh="100", maxChargeCurrent="60"),
    ]
    (msg,) = _matching(_messages(comps), "charge current")
    assert msg.text == "Error: Battery b1 potential charge current (70.0A) exceeds max charge current (60A)."

    comps[2] = battery(capacityAh="100", maxChargeCurrent="75")
    (msg,) = _matching(_messages(comps), "charge current")
    assert msg.level is MessageLevel.WARN_C_RATE


def test_discharge_current_checks():
    comps = [inverter(ratedPower="3000"), battery(capacityAh="100", nominalVoltage="24", maxDischargeCurrent="100")]
    (msg,) = _matching(_messages(comps), "discharge current")
    assert msg.text == "Error: Battery b1 estimated discharge current (125.0A) exceeds max discharge current (100A)."

    comps[1] = battery(capacityAh="100", nominalVoltage="24", maxDischargeCurrent="130")
    (msg,) = _matching(_messages(comps), "discharge current")
    assert msg.level is MessageLevel.WARN_C_RATE


def test_battery_checks_need_capacity():
    comps = [mppt(maxOutputCurrent="40"), battery(capacityAh="", maxChargeCurrent="10")]
    assert not _matching(_messages(comps), "charge current")


def test_inverter_input_window():
    def texts(**props):
        return [m.text for m in _matching(_messages([inverter(**props)], systemWideVoltage=48), "Inverter i1")]

    assert texts(inputVoltageMin="50") == ["Error: Inverter i1 system voltage (48V) below inverter minimum (50V)."]
    assert texts(inputVoltageMin="46") == ["Warning (Sizing): Inverter i1 system voltage (48V) within 5% of minimum (46V)."]
    assert texts(inputVoltageMax="40") == ["Error: Inverter i1 system voltage (48V) exceeds inverter maximum (40V)."]
    assert texts(inputVoltageMax="50") == ["Warning (Sizing): Inverter i1 system voltage (48V) within 5% of maximum (50V)."]
    assert texts(inputVoltageMin="40", inputVoltageMax="60") == []
    assert texts(inputVoltageMin="n/a") == []


def test_production_sanity_messages():
    comps = [panel(pmax=""), array(), battery(capacityAh="100")]
    messages = _messages(comps, estimatedDailyUsageWh=9000, systemWideVoltage=48)
    assert _matching(messages, "no valid panel pmax")
    assert _matching(messages, "Battery autonomy < 0.5 days")
    (deficit,) = _matching(messages, "expect deficit")
    assert deficit.level is MessageLevel.WARN_SIZING
    assert not _matching(messages, "Daily usage is 0")


def test_daily_usage_zero_warning_and_surplus_note():
    comps = [panel(pmax="1000"), array()]
    assert _matching(_messages(comps), "Daily usage is 0")

    messages = _messages(comps, estimatedDailyUsageWh=100)
    (surplus,) = _matching(messages, ">150%")
    assert surplus.level is MessageLevel.INFO


def test_rule_order_is_preserved():
    comps = [
        battery(id="b1", nominalVoltage="12", capacityAh="100", maxChargeCurrent="10"),
        battery(id="b2", nominalVoltage="24"),
        mppt(maxOutputCurrent="40"),
        panel(voc="40"),
        array(series="1"),
    ]
    texts = [m.text for m in _messages(comps)]
    order = [
        "Mixed battery voltages",
        "not assigned to any MPPT",
        "has no assigned solar arrays",
        "potential charge current",
        "Daily usage is 0",
        "ideal wiring",
        "NEC/IEC",
        "Critical errors found",
    ]
    positions = [next(i for i, t in enumerate(texts) if needle in t) for needle in order]
    assert positions == sorted(positions)


def test_warning_rollup():
    messages = _messages([mppt()])
    assert messages[-1].level is MessageLevel.WARN
    assert messages[-1].text.startswith("Warning: Warnings present.")


def test_malformed_properties_never_raise():
    comps = [
        panel(voc="?", isc="", pmax="lots"),
        array(series="", strings="-", mppt_id="m1"),
        mppt(maxInputVoltage="x", maxInputCurrent="0", maxOutputCurrent="", nominalBatteryVoltage="-"),
        battery(capacityAh="NaN", nominalVoltage="abc"),
        inverter(inputVoltageMin="", ratedPower="?"),
    ]
    messages = _messages(comps)
    assert messages[-1].level in (MessageLevel.WARN, MessageLevel.ERROR, MessageLevel.INFO)


def test_deterministic_output():
    setup = Setup(components=tuple(_compatible_system()), inputs=SystemInputs(estimatedDailyUsageWh=500))
    assert evaluate(setup) == evaluate(setup)


def test_group_by_severity():
    groups = group_by_severity(_messages([battery(id="b1", nominalVoltage="12"), battery(id="b2", nominalVoltage="24")]))
    assert [m.level for m in groups["errors"]] == [MessageLevel.ERROR, MessageLevel.ERROR]
    assert all(m.level.is_warning for m in groups["warnings"])
    assert {m.level for m in groups["notes"]} <= {MessageLevel.INFO, MessageLevel.INFO_SAFETY}


def test_zero_ratio_warns_only_when_components_exist():
    assert not _matching(_messages([]), "expect deficit")
    (deficit,) = _matching(_messages([mppt()]), "expect deficit")
    assert deficit.level is MessageLevel.WARN_SIZING
