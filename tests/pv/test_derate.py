import math

import pytest

from solarsetup.core.models import Setup, make_component
from solarsetup.pv.derate import derate_arrays


def _setup():
    return Setup(
        components=(
            make_component("Individual Solar Panel", "p1", "Mono", {"voc": "40", "pmax": "400", "tempCoeffVocPctPerC": "-0.3"}),
            make_component("Solar Array Configuration", "a1", "Roof", {"selectedPanelId": "p1", "panelsInSeries": "3", "numberOfStrings": "2"}),
            make_component("Solar Array Configuration", "a2", "Shed", {"selectedPanelId": "missing"}),
        )
    )


def test_one_row_per_resolved_array():
    table = derate_arrays(_setup(), cell_temp_c=-10)
    assert list(table["array"]) == ["Roof"]
    row = table.iloc[0]
    assert row["voc_stc_v"] == 120
    assert row["voc_cell_v"] == pytest.approx(120 * (1 + (-0.3 / 100) * -35))
    # default Pmax coefficient when the panel leaves it blank
    assert row["pmax_cell_w"] == pytest.approx(2400 * (1 + (-0.35 / 100) * -35))


def test_missing_values_stay_nan():
    setup = Setup(
        components=(
            make_component("Individual Solar Panel", "p1", "Blank"),
            make_component("Solar Array Configuration", "a1", "Roof", {"selectedPanelId": "p1"}),
        )
    )
    row = derate_arrays(setup, cell_temp_c=25).iloc[0]
    assert math.isnan(row["voc_cell_v"])
