"""Load and save setups as YAML or JSON.

The interchange shape is ``{components: [...], systemInputs: {...}, notes, nextId}``.
``nextId`` records the next component id so removed ids are not handed out again.
Property values stored as numbers are turned back into text on load, and
missing assumption fields fall back to their defaults.
"""
from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict

import yaml

from .models import Setup, SystemInputs, ValidationError, component_to_dict, make_component


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed into domain models."""


_DEF_REQUIRED_COMPONENT_KEYS = {"id", "type"}
_INPUT_KEYS = {f.name for f in fields(SystemInputs)}


def _load_raw(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text) or {}
        if path.suffix.lower() == ".json":
            return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Could not parse {path.name}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc
    raise ConfigError(f"Unsupported config extension: {path.suffix}")


def _parse_component(raw: Any, position: int):
    if not isinstance(raw, dict):
        raise ConfigError(f"Component #{position} must be a mapping")
    missing = _DEF_REQUIRED_COMPONENT_KEYS - raw.keys()
    if missing:
        raise ConfigError(f"Component #{position} missing fields: {sorted(missing)}")
    props = raw.get("properties") or {}
    if not isinstance(props, dict):
        raise ConfigError(f"Component #{position} properties must be a mapping")
    comp_id = raw["id"]
    if isinstance(comp_id, float) and comp_id.is_integer():
        comp_id = int(comp_id)
    try:
        return make_component(
            raw["type"],
            id=str(comp_id) if comp_id is not None else "",
            name=str(raw.get("name") or ""),
            properties=props,
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid component #{position}: {exc}") from exc


def _parse_inputs(raw: Any) -> SystemInputs:
    if not isinstance(raw, dict):
        raise ConfigError("systemInputs must be a mapping")
    values = {}
    for key in _INPUT_KEYS & raw.keys():
        val = raw[key]
        try:
            values[key] = float(val)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"systemInputs.{key} must be numeric") from exc
    try:
        return SystemInputs(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid systemInputs: {exc}") from exc


def _parse_next_id(raw: Any) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise ConfigError("nextId must be a non-negative integer")
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError("nextId must be a non-negative integer") from exc
    if not value.is_integer() or value < 0:
        raise ConfigError("nextId must be a non-negative integer")
    return int(value)


def parse_setup(raw: Any) -> Setup:
    """Build a :class:`Setup` from an already-decoded interchange document."""

    if not isinstance(raw, dict):
        raise ConfigError("Setup document must be a mapping")
    comps_raw = raw.get("components")
    if not isinstance(comps_raw, list):
        raise ConfigError("Setup must contain a 'components' list")
    if "systemInputs" not in raw:
        raise ConfigError("Setup must contain 'systemInputs'")
    components = [_parse_component(c, idx + 1) for idx, c in enumerate(comps_raw)]
    inputs = _parse_inputs(raw["systemInputs"])
    try:
        return Setup(
            components=tuple(components),
            inputs=inputs,
            notes=str(raw.get("notes") or ""),
            next_id=_parse_next_id(raw.get("nextId")),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid setup: {exc}") from exc


def load_setup(path: str | Path) -> Setup:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    return parse_setup(_load_raw(path))


def setup_to_dict(setup: Setup) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "components": [component_to_dict(c) for c in setup.components],
        "systemInputs": setup.inputs.to_dict(),
    }
    if setup.notes:
        data["notes"] = setup.notes
    if setup.next_id:
        data["nextId"] = setup.next_id
    return data


def write_setup(path: str | Path, setup: Setup) -> None:
    path = Path(path)
    data = setup_to_dict(setup)
    if path.suffix.lower() in {".yaml", ".yml"}:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    elif path.suffix.lower() == ".json":
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, sort_keys=False), encoding="utf-8")
    else:
        raise ConfigError(f"Unsupported config extension: {path.suffix}")


__all__ = [
    "ConfigError",
    "parse_setup",
    "load_setup",
    "setup_to_dict",
    "write_setup",
]
