"""Deterministic debug collectors for structured JSON events.

Engine stages emit one event per step (``stats.summary``, ``diagnostics.rule``
and so on) so a run can be audited without a logging framework. Payloads are
key-sorted on the way in, which keeps dumps diff-friendly.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol


class DebugCollector(Protocol):
    def emit(self, stage: str, payload: Dict[str, Any], *, component: Optional[str] = None) -> None:
        ...


def _json_safe_scalar(val: Any) -> Any:
    """NaN/inf are not valid JSON; enums collapse to their value."""
    if isinstance(val, float) and not math.isfinite(val):
        return None
    if hasattr(val, "value") and isinstance(getattr(val, "value"), str):
        return val.value
    return val


def _ordered(obj: Any) -> Any:
    """Recursively order mappings for deterministic JSON dumps."""
    if isinstance(obj, dict):
        return {k: _ordered(obj[k]) for k in sorted(obj)}
    if isinstance(obj, (list, tuple)):
        return [_ordered(v) for v in obj]
    return _json_safe_scalar(obj)


def _event(stage: str, payload: Dict[str, Any], component: Optional[str]) -> Dict[str, Any]:
    return {"stage": stage, "component": component, "payload": _ordered(payload)}


class NullDebugCollector:
    def emit(self, stage: str, payload: Dict[str, Any], *, component: Optional[str] = None) -> None:  # noqa: D401
        """Discard events (no-op)."""
        return


@dataclass
class ListDebugCollector:
    events: List[Dict[str, Any]] = field(default_factory=list)

    def emit(self, stage: str, payload: Dict[str, Any], *, component: Optional[str] = None) -> None:
        self.events.append(_event(stage, payload, component))

    def stages(self) -> List[str]:
        return [e["stage"] for e in self.events]


class JsonlDebugWriter:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("a", encoding="utf-8")

    def emit(self, stage: str, payload: Dict[str, Any], *, component: Optional[str] = None) -> None:
        json.dump(_event(stage, payload, component), self._fh, sort_keys=True)
        self._fh.write("\n")
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


class JsonDebugWriter:
    """Collect all events in memory then write a single JSON array.

    Used when ``--debug`` points at a ``.json`` file so one evaluation ends up
    as a single self-contained document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._events: List[Dict[str, Any]] = []

    def emit(self, stage: str, payload: Dict[str, Any], *, component: Optional[str] = None) -> None:
        self._events.append(_event(stage, payload, component))

    def close(self) -> None:
        """Write collected events as a single JSON document."""
        self.path.write_text(json.dumps(self._events, indent=2, sort_keys=True))


def build_debug_collector(path: str | Path) -> JsonlDebugWriter | JsonDebugWriter:
    """Factory: .json -> JsonDebugWriter, otherwise JsonlDebugWriter."""
    if str(path).lower().endswith(".json"):
        return JsonDebugWriter(path)
    return JsonlDebugWriter(path)


__all__ = [
    "DebugCollector",
    "NullDebugCollector",
    "ListDebugCollector",
    "JsonlDebugWriter",
    "JsonDebugWriter",
    "build_debug_collector",
]
