"""Domain models for an off-grid solar setup.

A setup is an ordered collection of components of five kinds plus the global
assumptions used to evaluate it. Component properties are text so partially
entered values survive; the engine parses them on read.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Tuple, Type, Union

from .parse import format_number


class ValidationError(ValueError):
    """Raised when model inputs violate constraints."""


class ComponentType(str, Enum):
    PANEL = "Individual Solar Panel"
    ARRAY = "Solar Array Configuration"
    MPPT = "MPPT Charge Controller"
    BATTERY = "Battery"
    INVERTER = "Inverter"


@dataclass(frozen=True)
class PanelProps:
    voc: str = ""
    isc: str = ""
    vmp: str = ""
    imp: str = ""
    pmax: str = ""
    costUsd: str = ""
    tempCoeffVocPctPerC: str = ""
    tempCoeffPmaxPctPerC: str = ""


@dataclass(frozen=True)
class ArrayConfigProps:
    selectedPanelId: str = ""
    panelsInSeries: str = "1"
    numberOfStrings: str = "1"
    assignedMpptId: str = ""


@dataclass(frozen=True)
class MpptProps:
    maxInputVoltage: str = ""
    maxInputCurrent: str = ""
    maxOutputCurrent: str = ""
    nominalBatteryVoltage: str = ""
    costUsd: str = ""


@dataclass(frozen=True)
class BatteryProps:
    nominalVoltage: str = ""
    capacityAh: str = ""
    maxChargeCurrent: str = ""
    maxDischargeCurrent: str = ""
    costUsd: str = ""


@dataclass(frozen=True)
class InverterProps:
    inputVoltageMin: str = ""
    inputVoltageMax: str = ""
    ratedPower: str = ""
    surgePower: str = ""
    efficiencyPct: str = ""
    idleDrawW: str = ""
    costUsd: str = ""


@dataclass(frozen=True)
class _ComponentBase:
    id: str
    name: str

    type: ClassVar[ComponentType]
    props_type: ClassVar[type]

    def __post_init__(self):
        if not self.id:
            raise ValidationError(f"{self.type.value} id is required")
        props = getattr(self, "properties")
        if not isinstance(props, self.props_type):
            raise ValidationError(f"{self.type.value} properties must be {self.props_type.__name__}")

    def with_property(self, key: str, value: str):
        """Return a copy with one property replaced; unknown keys are rejected."""

        if key not in property_names(self.type):
            raise ValidationError(f"{self.type.value} has no property {key!r}")
        props = replace(getattr(self, "properties"), **{key: as_text(value)})
        return replace(self, properties=props)


@dataclass(frozen=True)
class Panel(_ComponentBase):
    properties: PanelProps = field(default_factory=PanelProps)

    type: ClassVar[ComponentType] = ComponentType.PANEL
    props_type: ClassVar[type] = PanelProps


@dataclass(frozen=True)
class ArrayConfig(_ComponentBase):
    properties: ArrayConfigProps = field(default_factory=ArrayConfigProps)

    type: ClassVar[ComponentType] = ComponentType.ARRAY
    props_type: ClassVar[type] = ArrayConfigProps


@dataclass(frozen=True)
class Mppt(_ComponentBase):
    properties: MpptProps = field(default_factory=MpptProps)

    type: ClassVar[ComponentType] = ComponentType.MPPT
    props_type: ClassVar[type] = MpptProps


@dataclass(frozen=True)
class Battery(_ComponentBase):
    properties: BatteryProps = field(default_factory=BatteryProps)

    type: ClassVar[ComponentType] = ComponentType.BATTERY
    props_type: ClassVar[type] = BatteryProps


@dataclass(frozen=True)
class Inverter(_ComponentBase):
    properties: InverterProps = field(default_factory=InverterProps)

    type: ClassVar[ComponentType] = ComponentType.INVERTER
    props_type: ClassVar[type] = InverterProps


Component = Union[Panel, ArrayConfig, Mppt, Battery, Inverter]

_CLASS_BY_TYPE: Dict[ComponentType, Type[_ComponentBase]] = {
    ComponentType.PANEL: Panel,
    ComponentType.ARRAY: ArrayConfig,
    ComponentType.MPPT: Mppt,
    ComponentType.BATTERY: Battery,
    ComponentType.INVERTER: Inverter,
}


def component_class(kind: ComponentType | str) -> Type[_ComponentBase]:
    try:
        return _CLASS_BY_TYPE[ComponentType(kind)]
    except ValueError as exc:
        raise ValidationError(f"Unknown component type: {kind!r}") from exc


def property_names(kind: ComponentType | str) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(component_class(kind).props_type))


def as_text(value: Any) -> str:
    """Coerce a stored property value back to text (numbers from JSON, None)."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def make_component(kind: ComponentType | str, id: str, name: str, properties: Dict[str, Any] | None = None) -> Component:
    """Build a component of ``kind`` from a text property mapping.

    Missing properties take the kind's defaults; unknown keys are dropped so
    files written by newer versions still load.
    """

    cls = component_class(kind)
    known = set(property_names(kind))
    values = {k: as_text(v) for k, v in (properties or {}).items() if k in known}
    return cls(id=id, name=name, properties=cls.props_type(**values))


def component_to_dict(component: Component) -> Dict[str, Any]:
    if isinstance(component, (Panel, ArrayConfig, Mppt, Battery, Inverter)):
        props = {f.name: getattr(component.properties, f.name) for f in fields(component.properties)}
        return {
            "id": component.id,
            "type": component.type.value,
            "name": component.name,
            "properties": props,
        }
    raise TypeError(f"Not a component: {component!r}")


@dataclass(frozen=True)
class SystemInputs:
    peakSunHours: float = 4.0
    estimatedDailyUsageWh: float = 0.0
    batteryDoD: float = 80.0
    inverterEfficiency: float = 90.0
    solarPanelEfficiency: float = 85.0
    systemWideVoltage: float = 48.0

    def __post_init__(self):
        for f in fields(self):
            val = getattr(self, f.name)
            if isinstance(val, bool) or not isinstance(val, (int, float)) or not math.isfinite(val):
                raise ValidationError(f"{f.name} must be a finite number")
        if self.peakSunHours < 0:
            raise ValidationError("peakSunHours must be non-negative")
        if self.estimatedDailyUsageWh < 0:
            raise ValidationError("estimatedDailyUsageWh must be non-negative")
        for name in ("batteryDoD", "inverterEfficiency", "solarPanelEfficiency"):
            if not (1 <= getattr(self, name) <= 100):
                raise ValidationError(f"{name} must be between 1 and 100 percent")
        if self.systemWideVoltage < 12:
            raise ValidationError("systemWideVoltage must be at least 12 V")

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Setup:
    components: Tuple[Component, ...] = ()
    inputs: SystemInputs = field(default_factory=SystemInputs)
    notes: str = ""
    # Next id the host will hand out; 0 when the document never recorded one.
    next_id: int = 0

    def __post_init__(self):
        comps = tuple(self.components)
        for comp in comps:
            if not isinstance(comp, (Panel, ArrayConfig, Mppt, Battery, Inverter)):
                raise ValidationError("components must contain component instances")
        seen = set()
        for comp in comps:
            if comp.id in seen:
                raise ValidationError(f"Duplicate component id: {comp.id}")
            seen.add(comp.id)
        if not isinstance(self.inputs, SystemInputs):
            raise ValidationError("inputs must be a SystemInputs instance")
        if isinstance(self.next_id, bool) or not isinstance(self.next_id, int) or self.next_id < 0:
            raise ValidationError("next_id must be a non-negative integer")
        object.__setattr__(self, "components", comps)

    def of_type(self, cls: Type[_ComponentBase]) -> list:
        return [c for c in self.components if isinstance(c, cls)]


def index_by_id(components: Iterable[Component]) -> Dict[str, Component]:
    return {c.id: c for c in components}


__all__ = [
    "ValidationError",
    "ComponentType",
    "PanelProps",
    "ArrayConfigProps",
    "MpptProps",
    "BatteryProps",
    "InverterProps",
    "Panel",
    "ArrayConfig",
    "Mppt",
    "Battery",
    "Inverter",
    "Component",
    "component_class",
    "property_names",
    "as_text",
    "make_component",
    "component_to_dict",
    "SystemInputs",
    "Setup",
    "index_by_id",
]
