import pytest

from solarsetup.core.debug import ListDebugCollector
from solarsetup.pv.temperature import cell_temperature


def test_cell_warmer_than_air_in_sun():
    debug = ListDebugCollector()
    temp = cell_temperature(1000.0, 25.0, 1.0, debug=debug)
    assert temp > 25.0
    assert debug.stages() == ["temp_cell.summary"]


def test_no_irradiance_tracks_air_temperature():
    assert cell_temperature(0.0, 10.0, 2.0) == pytest.approx(10.0)


def test_unknown_mounting():
    with pytest.raises(ValueError):
        cell_temperature(800.0, 20.0, mounting="floating")
