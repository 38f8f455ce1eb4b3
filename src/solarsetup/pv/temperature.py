"""Cell temperature estimate built on pvlib."""
from __future__ import annotations

import pvlib

from solarsetup.core.debug import DebugCollector, NullDebugCollector


def cell_temperature(
    poa_global_wm2: float,
    temp_air_c: float,
    wind_ms: float = 1.0,
    mounting: str = "open_rack_glass_glass",
    debug: DebugCollector | None = None,
) -> float:
    """Estimate steady-state cell temperature with the SAPM thermal model."""

    debug = debug or NullDebugCollector()

    try:
        params = pvlib.temperature.TEMPERATURE_MODEL_PARAMETERS["sapm"][mounting]
    except KeyError as exc:
        available = list(pvlib.temperature.TEMPERATURE_MODEL_PARAMETERS["sapm"].keys())
        raise ValueError(
            f"Unsupported mounting configuration: {mounting}; choose from {available}"
        ) from exc

    temp_cell = float(
        pvlib.temperature.sapm_cell(
            poa_global=poa_global_wm2,
            temp_air=temp_air_c,
            wind_speed=wind_ms,
            **params,
        )
    )

    debug.emit(
        "temp_cell.summary",
        {
            "mounting": mounting,
            "poa_global_wm2": float(poa_global_wm2),
            "temp_air_c": float(temp_air_c),
            "wind_ms": float(wind_ms),
            "temp_cell_c": temp_cell,
        },
    )
    return temp_cell


__all__ = ["cell_temperature"]
