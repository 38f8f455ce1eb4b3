"""Mutable component inventory owned by the host.

The inventory handles the lifecycle the engine does not: creating components
with default properties, renaming, editing, cloning and removal with
reference cleanup. :meth:`Inventory.setup` hands the engine an immutable
snapshot, so evaluation never sees a half-applied edit.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from .models import (
    ArrayConfig,
    Component,
    ComponentType,
    Mppt,
    Panel,
    Setup,
    SystemInputs,
    ValidationError,
    component_class,
)


class Inventory:
    def __init__(
        self,
        components: Iterable[Component] = (),
        inputs: SystemInputs | None = None,
        notes: str = "",
        next_id: int = 0,
    ):
        self._components: List[Component] = list(components)
        self.inputs = inputs or SystemInputs()
        self.notes = notes
        floor = 1 + max((_numeric_id(c.id) for c in self._components), default=0)
        self._next_id = max(floor, next_id)

    @classmethod
    def from_setup(cls, setup: Setup) -> "Inventory":
        return cls(setup.components, setup.inputs, setup.notes, setup.next_id)

    @property
    def components(self) -> List[Component]:
        return list(self._components)

    def setup(self) -> Setup:
        return Setup(
            components=tuple(self._components),
            inputs=self.inputs,
            notes=self.notes,
            next_id=self._next_id,
        )

    def get(self, component_id: str) -> Component:
        for comp in self._components:
            if comp.id == component_id:
                return comp
        raise KeyError(component_id)

    def _new_id(self) -> str:
        new = str(self._next_id)
        self._next_id += 1
        return new

    def add(self, kind: ComponentType | str, quantity: int = 1) -> List[Component]:
        """Append ``quantity`` components of ``kind`` with default properties.

        Names continue the per-type count: a second battery is "Battery 2".
        """

        cls = component_class(kind)
        existing = sum(1 for c in self._components if isinstance(c, cls))
        added = []
        for idx in range(max(1, int(quantity))):
            comp = cls(id=self._new_id(), name=f"{cls.type.value} {existing + idx + 1}")
            added.append(comp)
        self._components.extend(added)
        return added

    def _swap(self, component_id: str, new: Component) -> Component:
        for idx, comp in enumerate(self._components):
            if comp.id == component_id:
                self._components[idx] = new
                return new
        raise KeyError(component_id)

    def rename(self, component_id: str, name: str) -> Component:
        return self._swap(component_id, replace(self.get(component_id), name=name))

    def set_property(self, component_id: str, key: str, value: str) -> Component:
        return self._swap(component_id, self.get(component_id).with_property(key, value))

    def clone(self, component_id: str) -> Component:
        """Copy a component under a fresh id; array clones drop their controller."""

        orig = self.get(component_id)
        cloned = replace(orig, id=self._new_id(), name=f"{orig.name} (Clone)")
        if isinstance(cloned, ArrayConfig):
            cloned = cloned.with_property("assignedMpptId", "")
        self._components.append(cloned)
        return cloned

    def remove(self, component_id: str) -> Component:
        """Remove a component and clear array references that pointed at it."""

        removed = self.get(component_id)
        kept: List[Component] = []
        for comp in self._components:
            if comp.id == component_id:
                continue
            if isinstance(comp, ArrayConfig):
                if comp.properties.assignedMpptId == component_id:
                    comp = comp.with_property("assignedMpptId", "")
                if comp.properties.selectedPanelId == component_id:
                    comp = comp.with_property("selectedPanelId", "")
            kept.append(comp)
        self._components = kept
        return removed

    def _require(self, component_id: str, cls) -> None:
        if not isinstance(self.get(component_id), cls):
            raise ValidationError(f"{component_id} is not a {cls.type.value}")

    def assign(self, array_id: str, *, panel_id: Optional[str] = None, mppt_id: Optional[str] = None) -> Component:
        """Point an array at a panel and/or controller by id.

        Ids must name an existing component of the right kind; an empty id
        clears the reference.
        """

        self._require(array_id, ArrayConfig)
        if panel_id:
            self._require(panel_id, Panel)
        if mppt_id:
            self._require(mppt_id, Mppt)
        arr = self.get(array_id)
        if panel_id is not None:
            arr = arr.with_property("selectedPanelId", panel_id)
        if mppt_id is not None:
            arr = arr.with_property("assignedMpptId", mppt_id)
        return self._swap(array_id, arr)


def _numeric_id(value: str) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


__all__ = ["Inventory"]
