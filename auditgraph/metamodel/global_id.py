"""
Global ids: stable, equality-bearing identifiers for graph nodes.

Canonical string forms:

    Person/bob                      InstanceId
    Address/                        UnboundedValueObjectId
    Person/bob#address.lines[2]     ValueObjectId (owner + fragment path)

Equality and hashing go through the canonical string, so an id parsed back
from its string equals the id it was rendered from. ``%`` and ``#`` inside
id values and map keys are percent-escaped.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from ..errors import AuditError, ErrorCode
from .managed import Entity, ManagedClass, ManagedClassRegistry
from .types import ContainerType, MapType, ValueObjectType


def _escape(text: str) -> str:
    return text.replace("%", "%25").replace("#", "%23")


def _unescape(text: str) -> str:
    return text.replace("%23", "#").replace("%25", "%")


def canonical_id_string(value: Any) -> str:
    """Canonical text of a primitive id value."""
    if isinstance(value, GlobalId):
        return value.value
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, tuple):
        return "(" + ",".join(canonical_id_string(v) for v in value) + ")"
    return str(value)


class GlobalId:
    """Base of all global ids; compared and hashed by canonical value."""

    type_name: str

    @property
    def value(self) -> str:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GlobalId):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: GlobalId) -> bool:
        return self.value < other.value

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


@dataclass(frozen=True, eq=False, repr=False)
class InstanceId(GlobalId):
    type_name: str
    cdo_id: Any
    id_string: str = ""

    def __post_init__(self) -> None:
        if not self.id_string:
            object.__setattr__(self, "id_string", canonical_id_string(self.cdo_id))

    @property
    def value(self) -> str:
        return f"{self.type_name}/{_escape(self.id_string)}"


@dataclass(frozen=True, eq=False, repr=False)
class UnboundedValueObjectId(GlobalId):
    type_name: str

    @property
    def value(self) -> str:
        return f"{self.type_name}/"


@dataclass(frozen=True, eq=False, repr=False)
class ValueObjectId(GlobalId):
    owner_id: InstanceId | UnboundedValueObjectId
    fragment: str
    # Class name of the value object itself; not part of identity
    type_name: str = ""

    @property
    def value(self) -> str:
        return f"{self.owner_id.value}#{self.fragment}"

    def root_id(self) -> InstanceId | UnboundedValueObjectId:
        return self.owner_id


def parse_global_id(text: str) -> GlobalId:
    """
    Parse a canonical global id string.

    Raises:
        AuditError(MALFORMED_GLOBAL_ID): text has no ``Type/`` prefix
    """
    owner_text, hash_sep, fragment = text.partition("#")
    type_name, slash, id_part = owner_text.partition("/")
    if not slash or not type_name or (hash_sep and not fragment):
        raise AuditError(ErrorCode.MALFORMED_GLOBAL_ID, text)

    owner: InstanceId | UnboundedValueObjectId
    if id_part == "":
        owner = UnboundedValueObjectId(type_name)
    else:
        id_string = _unescape(id_part)
        owner = InstanceId(type_name, id_string, id_string=id_string)

    if hash_sep:
        return ValueObjectId(owner, fragment)
    return owner


_FRAGMENT_TOKEN = re.compile(r"([^.\[\]]+)|\[([^\]]*)\]")


def fragment_segments(fragment: str) -> list[tuple[str, str]]:
    """Split ``address.lines[2]`` into [("property", "address"), ("property", "lines"), ("item", "2")]."""
    segments: list[tuple[str, str]] = []
    for match in _FRAGMENT_TOKEN.finditer(fragment):
        if match.group(1) is not None:
            segments.append(("property", match.group(1)))
        else:
            segments.append(("item", match.group(2)))
    return segments


# -----------------------------------------------------------------------------
# Id factory (needs the managed class registry)
# -----------------------------------------------------------------------------


class IdFactory:
    """Allocates global ids for live objects and resolves ids back to classes."""

    def __init__(self, registry: ManagedClassRegistry, *, map_key_dot_replacement: str = "-"):
        self.registry = registry
        self.map_key_dot_replacement = map_key_dot_replacement

    def instance_id(self, cls: type, cdo_id: Any) -> InstanceId:
        managed = self.registry.get(cls)
        return InstanceId(managed.type_name, cdo_id, id_string=self.id_string(cdo_id))

    def unbounded_value_object_id(self, cls: type) -> UnboundedValueObjectId:
        return UnboundedValueObjectId(self.registry.get(cls).type_name)

    def value_object_id(self, cls: type, owner_class: type, owner_id: Any, fragment: str) -> ValueObjectId:
        return ValueObjectId(self.instance_id(owner_class, owner_id), fragment, self.registry.get(cls).type_name)

    def entity_id(self, managed: Entity, cdo: Any) -> InstanceId:
        id_value = managed.id_of(cdo)
        if id_value is None:
            id_name = managed.id_property.name if managed.id_property else None
            raise AuditError(ErrorCode.ENTITY_INSTANCE_WITH_NULL_ID, managed.type_name, id_name)
        return InstanceId(managed.type_name, id_value, id_string=self.id_string(id_value))

    def id_string(self, value: Any) -> str:
        """Canonical id text; nested entities render as their own global id."""
        if value is not None and not isinstance(value, (GlobalId, tuple)) and self.registry.is_managed_instance(value):
            managed = self.registry.get_for(value)
            if isinstance(managed, Entity):
                return self.entity_id(managed, value).value
            parts = ",".join(f"{p.name}={self.id_string(p.get(value))}" for p in managed.properties)
            return "{" + parts + "}"
        if isinstance(value, tuple):
            return "(" + ",".join(self.id_string(v) for v in value) + ")"
        return canonical_id_string(value)

    # -------------------------------------------------------------------------
    # Fragment paths
    # -------------------------------------------------------------------------

    @staticmethod
    def property_fragment(base: str, property_name: str) -> str:
        return f"{base}.{property_name}" if base else property_name

    @staticmethod
    def index_fragment(base: str, index: int) -> str:
        return f"{base}[{index}]"

    def key_fragment(self, base: str, key: Any) -> str:
        text = _escape(canonical_id_string(key)).replace(".", self.map_key_dot_replacement)
        return f"{base}[{text}]"

    @staticmethod
    def digest_fragment(base: str, digest: str) -> str:
        return f"{base}[~{digest}]"

    def content_digest(self, cdo: Any) -> str:
        """Stable digest of a value object's property values (for set elements)."""
        return hashlib.sha1(self._content_text(cdo).encode("utf-8")).hexdigest()[:12]

    def _content_text(self, value: Any) -> str:
        if value is None:
            return "None"
        if self.registry.is_managed_instance(value):
            managed = self.registry.get_for(value)
            if isinstance(managed, Entity):
                return self.entity_id(managed, value).value
            inner = ",".join(f"{p.name}={self._content_text(p.get(value))}" for p in managed.properties)
            return f"{managed.type_name}{{{inner}}}"
        if isinstance(value, (list, tuple)):
            return "[" + ",".join(self._content_text(v) for v in value) + "]"
        if isinstance(value, (set, frozenset)):
            return "{" + ",".join(sorted(self._content_text(v) for v in value)) + "}"
        if isinstance(value, dict):
            items = sorted(f"{self._content_text(k)}:{self._content_text(v)}" for k, v in value.items())
            return "{" + ",".join(items) + "}"
        return f"{type(value).__name__}:{canonical_id_string(value)}"

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def managed_class_of(self, global_id: GlobalId) -> ManagedClass:
        """
        Managed class of the object a global id points at.

        Value object ids parsed from text carry no class name; their class is
        found by walking the owner's properties along the fragment path.
        """
        if isinstance(global_id, (InstanceId, UnboundedValueObjectId)):
            return self.registry.get_by_name(global_id.type_name)
        if not isinstance(global_id, ValueObjectId):
            raise AuditError(ErrorCode.NOT_INSTANCE_NOR_ID, global_id)
        if global_id.type_name:
            return self.registry.get_by_name(global_id.type_name)

        managed = self.managed_class_of(global_id.owner_id)
        mapped = None
        for kind, segment in fragment_segments(global_id.fragment):
            if kind == "property":
                if mapped is not None:
                    managed = self._managed_of_type(mapped, global_id)
                mapped = managed.get_property(segment).mapped_type
            elif isinstance(mapped, ContainerType):
                mapped = mapped.item_type
            elif isinstance(mapped, MapType):
                mapped = mapped.value_type
            else:
                raise AuditError(ErrorCode.MALFORMED_GLOBAL_ID, global_id.value)
        return self._managed_of_type(mapped, global_id)

    def _managed_of_type(self, mapped: Any, global_id: GlobalId) -> ManagedClass:
        if not isinstance(mapped, ValueObjectType):
            raise AuditError(ErrorCode.MALFORMED_GLOBAL_ID, global_id.value)
        return self.registry.get(mapped.base_class)
