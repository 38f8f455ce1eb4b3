import math

import pytest

from solarsetup.pv.calculations import (
    TemperatureInputs,
    adjust_for_temperature,
    effective_pmax,
    effective_voc,
    lcoe,
    linear_degradation,
    simple_payback,
    voltage_drop,
)


def test_temperature_adjustment_defaults():
    # 45 °C cell, -0.28 %/°C -> 5.6 % lower than STC
    assert effective_voc(40.0) == pytest.approx(40.0 * (1 - 0.0028 * 20))
    assert effective_pmax(400.0) == pytest.approx(400.0 * (1 - 0.0035 * 20))


def test_cold_cells_raise_voc():
    cold = TemperatureInputs(actual_cell_temp_c=-10)
    assert effective_voc(40.0, cold) > 40.0


def test_non_finite_inputs_leave_value_unchanged():
    assert adjust_for_temperature(40.0, math.nan, 20) == 40.0
    assert math.isnan(adjust_for_temperature(math.nan, -0.3, 20))


def test_voltage_drop_round_trip_length():
    drop_v, pct = voltage_drop(current_a=10, one_way_length_m=10, cross_section_mm2=4, system_voltage=48)
    expected = 10 * 0.017241 * 20 / 4
    assert drop_v == pytest.approx(expected)
    assert pct == pytest.approx(expected / 48 * 100)


def test_voltage_drop_invalid_inputs():
    drop_v, pct = voltage_drop(current_a=0, one_way_length_m=10, cross_section_mm2=4, system_voltage=48)
    assert math.isnan(drop_v) and math.isnan(pct)


def test_linear_degradation_series():
    series = linear_degradation(1000.0, 0.5, 2)
    assert list(series.index) == [0, 1, 2]
    assert series.tolist() == pytest.approx([1000.0, 995.0, 990.0])


def test_simple_payback():
    assert simple_payback(1000, 500, 1.0) == 2
    assert simple_payback(1000, 100, 1.0, annual_escalation_pct=10) < 10
    assert math.isnan(simple_payback(1_000_000, 1, 0.1))


def test_lcoe():
    assert lcoe(5000, 50000) == pytest.approx(0.1)
    assert math.isnan(lcoe(5000, 0))
