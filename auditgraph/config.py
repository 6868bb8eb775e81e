"""
Engine configuration, loadable from TOML.

Example ``auditgraph.toml``::

    mapping_style = "fields"          # or "getters"
    new_object_snapshot = false
    map_key_dot_replacement = "-"
    default_class_type = "value_object"   # or "value"
    values = ["shop.model:Money"]

    [[entities]]
    class = "shop.model:Customer"
    id_property = "customer_no"       # optional, else detected
    type_name = "Customer"            # optional

    [[value_objects]]
    class = "shop.model:Address"
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .metamodel.property import MappingStyle

DefaultClassType = Literal["value_object", "value"]

MAPPING_STYLES = ("fields", "getters")
DEFAULT_CLASS_TYPES = ("value_object", "value")


@dataclass(frozen=True)
class EntityRegistration:
    class_path: str
    id_property: str | None = None
    type_name: str | None = None


@dataclass(frozen=True)
class ValueObjectRegistration:
    class_path: str
    type_name: str | None = None


@dataclass
class AuditConfig:
    mapping_style: MappingStyle = "fields"
    new_object_snapshot: bool = False
    map_key_dot_replacement: str = "-"
    default_class_type: DefaultClassType = "value_object"

    # Registrations as "module:Class" import paths
    entities: list[EntityRegistration] = field(default_factory=list)
    value_objects: list[ValueObjectRegistration] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """
        Raises:
            ValueError: naming the offending key
        """
        if self.mapping_style not in MAPPING_STYLES:
            raise ValueError(f"mapping_style must be one of {MAPPING_STYLES}, got {self.mapping_style!r}")
        if self.default_class_type not in DEFAULT_CLASS_TYPES:
            raise ValueError(
                f"default_class_type must be one of {DEFAULT_CLASS_TYPES}, got {self.default_class_type!r}"
            )
        if not isinstance(self.new_object_snapshot, bool):
            raise ValueError(f"new_object_snapshot must be a boolean, got {self.new_object_snapshot!r}")
        if not isinstance(self.map_key_dot_replacement, str) or "." in self.map_key_dot_replacement:
            raise ValueError(
                f"map_key_dot_replacement must be a string without '.', got {self.map_key_dot_replacement!r}"
            )


def resolve_class(class_path: str) -> type:
    """
    Import a class from ``"package.module:Class"``.

    Raises:
        ValueError: path malformed, module missing, or attribute not a class
    """
    module_name, sep, qualname = class_path.partition(":")
    if not sep or not module_name or not qualname:
        raise ValueError(f"Class path must look like 'module:Class', got {class_path!r}")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import module {module_name!r} for {class_path!r}: {e}") from e
    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise ValueError(f"Class {qualname!r} not found in module {module_name!r}")
    if not isinstance(target, type):
        raise ValueError(f"{class_path!r} is not a class")
    return target


def _opt_str(raw: dict[str, Any], key: str, where: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where}.{key} must be a non-empty string")
    return value.strip()


def _class_path(raw: Any, where: str) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("class"), str):
        return raw["class"]
    raise ValueError(f"{where} entries need a 'class' import path")


def config_from_dict(data: dict[str, Any]) -> AuditConfig:
    """Build and validate a config from parsed TOML data."""
    entities: list[EntityRegistration] = []
    for raw in data.get("entities", []):
        entities.append(
            EntityRegistration(
                class_path=_class_path(raw, "entities"),
                id_property=_opt_str(raw, "id_property", "entities") if isinstance(raw, dict) else None,
                type_name=_opt_str(raw, "type_name", "entities") if isinstance(raw, dict) else None,
            )
        )

    value_objects: list[ValueObjectRegistration] = []
    for raw in data.get("value_objects", []):
        value_objects.append(
            ValueObjectRegistration(
                class_path=_class_path(raw, "value_objects"),
                type_name=_opt_str(raw, "type_name", "value_objects") if isinstance(raw, dict) else None,
            )
        )

    values = [_class_path(raw, "values") for raw in data.get("values", [])]

    config = AuditConfig(
        mapping_style=data.get("mapping_style", "fields"),
        new_object_snapshot=data.get("new_object_snapshot", False),
        map_key_dot_replacement=data.get("map_key_dot_replacement", "-"),
        default_class_type=data.get("default_class_type", "value_object"),
        entities=entities,
        value_objects=value_objects,
        values=values,
    )
    config.validate()
    return config


def load_config(path: str | Path) -> AuditConfig:
    """
    Load config from a TOML file.

    A ``pyproject.toml`` is read from its ``[tool.auditgraph]`` table.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If TOML is malformed or a key is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse config TOML: {e}") from e

    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("auditgraph", {})
    return config_from_dict(data)
