"""Evaluation engine: statistics first, then diagnostics over the same snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from solarsetup.core.debug import DebugCollector, NullDebugCollector
from solarsetup.core.models import Setup

from .diagnostics import CategorizedMessage, MessageLevel, group_by_severity, run_diagnostics
from .stats import Stats, compute_stats


@dataclass(frozen=True)
class Evaluation:
    stats: Stats
    messages: List[CategorizedMessage]

    @property
    def has_errors(self) -> bool:
        return any(m.level is MessageLevel.ERROR for m in self.messages)


def evaluate(setup: Setup, debug: DebugCollector | None = None) -> Evaluation:
    """Evaluate a complete setup snapshot."""

    debug = debug or NullDebugCollector()
    stats = compute_stats(setup.components, setup.inputs, debug=debug)
    messages = run_diagnostics(setup.components, stats, setup.inputs, debug=debug)
    return Evaluation(stats=stats, messages=messages)


__all__ = [
    "Evaluation",
    "evaluate",
    "Stats",
    "compute_stats",
    "run_diagnostics",
    "CategorizedMessage",
    "MessageLevel",
    "group_by_severity",
]
