"""Temperature-adjusted string figures for every array in a setup."""
from __future__ import annotations

import pandas as pd

from solarsetup.core.debug import DebugCollector, NullDebugCollector
from solarsetup.core.models import ArrayConfig, Setup, index_by_id
from solarsetup.core.parse import is_present, parse_number
from solarsetup.engine.stats import resolve_panel
from solarsetup.pv.calculations import (
    DEFAULT_TEMP_COEFF_PMAX_PCT,
    DEFAULT_TEMP_COEFF_VOC_PCT,
    TemperatureInputs,
    effective_pmax,
    effective_voc,
)

COLUMNS = ["array", "panel", "cell_temp_c", "voc_stc_v", "voc_cell_v", "pmax_stc_w", "pmax_cell_w"]


def derate_arrays(setup: Setup, cell_temp_c: float, debug: DebugCollector | None = None) -> pd.DataFrame:
    """One row per array with a resolvable panel.

    Panel temperature coefficients are used when present, otherwise typical
    crystalline-silicon defaults. Missing electrical values stay ``nan``.
    """

    debug = debug or NullDebugCollector()
    by_id = index_by_id(setup.components)
    rows = []
    for arr in setup.of_type(ArrayConfig):
        panel = resolve_panel(arr, by_id)
        if panel is None:
            continue
        coeff_voc = parse_number(panel.properties.tempCoeffVocPctPerC)
        coeff_pmax = parse_number(panel.properties.tempCoeffPmaxPctPerC)
        temps = TemperatureInputs(
            coefficient_voc_pct_per_c=coeff_voc if is_present(coeff_voc) else DEFAULT_TEMP_COEFF_VOC_PCT,
            coefficient_pmax_pct_per_c=coeff_pmax if is_present(coeff_pmax) else DEFAULT_TEMP_COEFF_PMAX_PCT,
            actual_cell_temp_c=cell_temp_c,
        )
        in_series = parse_number(arr.properties.panelsInSeries)
        strings = parse_number(arr.properties.numberOfStrings)
        voc_stc = parse_number(panel.properties.voc) * in_series
        pmax_stc = parse_number(panel.properties.pmax) * in_series * strings
        rows.append(
            {
                "array": arr.name,
                "panel": panel.name,
                "cell_temp_c": cell_temp_c,
                "voc_stc_v": voc_stc,
                "voc_cell_v": effective_voc(voc_stc, temps),
                "pmax_stc_w": pmax_stc,
                "pmax_cell_w": effective_pmax(pmax_stc, temps),
            }
        )
        debug.emit("derate.array", rows[-1], component=arr.id)
    return pd.DataFrame(rows, columns=COLUMNS)


__all__ = ["derate_arrays"]
