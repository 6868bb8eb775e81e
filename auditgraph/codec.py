"""
JSON codec for ids, snapshots, changes, diffs and commits.

Output is plain JSON: global ids as canonical strings, managed classes by
type name, no Python class objects. Decoding looks the type name up in the
type mapper and uses the declared property types to restore typed values
(tuples, frozensets, datetimes, enums, references as GlobalIds), so
``decode(encode(x)) == x`` for registered domain types.

Primitive encodings:
    datetime/date/time  ISO-8601 string
    Decimal/UUID/Fraction  string
    Enum                member name
    bytes               base64 string
    timedelta           seconds (float)
    complex             [real, imag]

Other value classes need a codec added with ``register_value_codec``.
"""

from __future__ import annotations

import base64
import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Callable
from uuid import UUID

from .commit.commit import Commit, CommitMetadata
from .diff.changes import (
    CHANGE_CLASSES,
    ELEMENT_CHANGE_CLASSES,
    Change,
    ChangeKind,
    ElementChangeKind,
    ElementValueChange,
    EntryAdded,
    EntryRemoved,
    EntryValueChange,
    ListChange,
    MapChange,
    NewObject,
    ObjectRemoved,
    ReferenceChange,
    SetChange,
    ValueAdded,
    ValueChange,
    ValueRemoved,
)
from .diff.diff import Diff
from .diff.differ import sort_key
from .errors import AuditError, ErrorCode
from .graph.snapshot import CdoSnapshot, SnapshotType
from .metamodel.global_id import GlobalId, IdFactory, ValueObjectId, parse_global_id
from .metamodel.managed import ManagedClass, ManagedClassRegistry
from .metamodel.types import (
    ContainerType,
    MappedType,
    MapType,
    PrimitiveType,
    SetType,
    ValueType,
    is_managed,
)

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]

# Key types whose encoded form is not a string; stored as JSON text in object keys
_NON_STRING_KEYS = (bool, int, float, complex, timedelta)


# -----------------------------------------------------------------------------
# Primitive encoding
# -----------------------------------------------------------------------------


def encode_primitive(value: Any) -> Any:
    if value is None or (isinstance(value, (bool, int, float, str)) and not isinstance(value, Enum)):
        return value
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID, Fraction)):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, complex):
        return [value.real, value.imag]
    raise TypeError(f"Not a primitive: {value!r}")


def decode_primitive(raw: Any, cls: Any) -> Any:
    if raw is None:
        return None
    if isinstance(cls, type) and issubclass(cls, Enum):
        return cls[raw] if cls is not Enum else raw
    if cls is datetime:
        return datetime.fromisoformat(raw)
    if cls is date:
        return date.fromisoformat(raw)
    if cls is time:
        return time.fromisoformat(raw)
    if cls is timedelta:
        return timedelta(seconds=raw)
    if cls is bytes:
        return base64.b64decode(raw)
    if cls is complex:
        return complex(raw[0], raw[1])
    if cls in (Decimal, UUID, Fraction, float):
        return cls(raw)
    return raw


class JsonConverter:
    """Converts engine objects to and from JSON-compatible dicts."""

    def __init__(self, registry: ManagedClassRegistry, id_factory: IdFactory):
        self.registry = registry
        self.id_factory = id_factory
        self._value_codecs: dict[type, tuple[Encoder, Decoder]] = {}

    def register_value_codec(self, cls: type, encode: Encoder, decode: Decoder) -> None:
        self._value_codecs[cls] = (encode, decode)

    def _codec_for(self, cls: type) -> tuple[Encoder, Decoder] | None:
        for klass in getattr(cls, "__mro__", (cls,)):
            codec = self._value_codecs.get(klass)
            if codec is not None:
                return codec
        return None

    # -------------------------------------------------------------------------
    # Typed values
    # -------------------------------------------------------------------------

    def encode_value(self, value: Any, mapped: MappedType | None = None) -> Any:
        if value is None:
            return None
        if isinstance(value, GlobalId):
            return value.value
        if isinstance(mapped, MapType) and isinstance(value, dict):
            return {self._encode_key(k): self.encode_value(v, mapped.value_type) for k, v in value.items()}
        if isinstance(mapped, ContainerType) and isinstance(value, (tuple, list, set, frozenset)):
            items = [self.encode_value(v, mapped.item_type) for v in value]
            if isinstance(mapped, SetType):
                items.sort(key=lambda item: sort_key(json.dumps(item, sort_keys=True)))
            return items
        return self._encode_leaf(value)

    def _encode_leaf(self, value: Any) -> Any:
        codec = self._codec_for(type(value))
        if codec is not None:
            return codec[0](value)
        if isinstance(value, dict):
            return {str(k): self._encode_leaf(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._encode_leaf(v) for v in value]
        if isinstance(value, (set, frozenset)):
            return sorted((self._encode_leaf(v) for v in value), key=sort_key)
        try:
            return encode_primitive(value)
        except TypeError as e:
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, type(value).__qualname__, "no JSON codec registered") from e

    def _encode_key(self, key: Any) -> str:
        encoded = self._encode_leaf(key)
        return encoded if isinstance(encoded, str) else json.dumps(encoded)

    def decode_value(self, raw: Any, mapped: MappedType | None = None) -> Any:
        if raw is None or mapped is None:
            return raw
        if is_managed(mapped):
            return parse_global_id(raw) if isinstance(raw, str) else raw
        if isinstance(mapped, MapType) and isinstance(raw, dict):
            return {self._decode_key(k, mapped.key_type): self.decode_value(v, mapped.value_type) for k, v in raw.items()}
        if isinstance(mapped, SetType) and isinstance(raw, list):
            return frozenset(self.decode_value(v, mapped.item_type) for v in raw)
        if isinstance(mapped, ContainerType) and isinstance(raw, list):
            return tuple(self.decode_value(v, mapped.item_type) for v in raw)
        if isinstance(mapped, PrimitiveType):
            return decode_primitive(raw, mapped.base_class)
        if isinstance(mapped, ValueType):
            codec = self._codec_for(mapped.base_class)
            if codec is not None:
                return codec[1](raw)
            if mapped.base_class is tuple and isinstance(raw, list):
                return tuple(raw)
        return raw

    def _decode_key(self, text: str, key_type: MappedType) -> Any:
        cls = key_type.base_class
        if isinstance(cls, type) and issubclass(cls, _NON_STRING_KEYS) and not issubclass(cls, Enum):
            return self.decode_value(json.loads(text), key_type)
        return self.decode_value(text, key_type)

    # -------------------------------------------------------------------------
    # Global ids
    # -------------------------------------------------------------------------

    def global_id_to_json(self, global_id: GlobalId) -> str:
        return global_id.value

    def global_id_from_json(self, text: str, type_name: str = "") -> GlobalId:
        global_id = parse_global_id(text)
        if type_name and isinstance(global_id, ValueObjectId):
            return ValueObjectId(global_id.owner_id, global_id.fragment, type_name)
        return global_id

    def _managed_class_of(self, global_id: GlobalId) -> ManagedClass:
        return self.id_factory.managed_class_of(global_id)

    # -------------------------------------------------------------------------
    # Commit metadata
    # -------------------------------------------------------------------------

    def metadata_to_dict(self, metadata: CommitMetadata) -> dict[str, Any]:
        return {
            "id": metadata.id,
            "author": metadata.author,
            "commit_date": metadata.commit_date.isoformat(),
        }

    def metadata_from_dict(self, data: dict[str, Any]) -> CommitMetadata:
        return CommitMetadata(
            id=int(data["id"]),
            author=data["author"],
            commit_date=datetime.fromisoformat(data["commit_date"]),
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot_to_dict(self, snapshot: CdoSnapshot) -> dict[str, Any]:
        managed = snapshot.managed_class
        state = {}
        for name, value in snapshot.state.items():
            mapped = managed.get_property(name).mapped_type if managed.has_property(name) else None
            state[name] = self.encode_value(value, mapped)

        result: dict[str, Any] = {
            "global_id": snapshot.global_id.value,
            "type": managed.type_name,
            "version": snapshot.version,
            "snapshot_type": snapshot.snapshot_type.value,
            "state": state,
            "changed_properties": list(snapshot.changed_properties),
        }
        if snapshot.commit_metadata is not None:
            result["commit_metadata"] = self.metadata_to_dict(snapshot.commit_metadata)
        return result

    def snapshot_from_dict(self, data: dict[str, Any]) -> CdoSnapshot:
        """
        Raises:
            AuditError(TYPE_NAME_NOT_FOUND): the snapshot's type was never registered
        """
        managed = self.registry.get_by_name(data["type"])
        state = {}
        for name, raw in data.get("state", {}).items():
            mapped = managed.get_property(name).mapped_type if managed.has_property(name) else None
            state[name] = self.decode_value(raw, mapped)

        metadata = data.get("commit_metadata")
        return CdoSnapshot(
            global_id=self.global_id_from_json(data["global_id"], managed.type_name),
            managed_class=managed,
            version=int(data["version"]),
            state=state,
            commit_metadata=self.metadata_from_dict(metadata) if metadata else None,
            snapshot_type=SnapshotType(data.get("snapshot_type", SnapshotType.UPDATE.value)),
            changed_properties=tuple(data.get("changed_properties", ())),
        )

    # -------------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------------

    def change_to_dict(self, change: Change) -> dict[str, Any]:
        managed = self._managed_class_of(change.affected_global_id)
        result: dict[str, Any] = {
            "change_type": change.kind.value,
            "global_id": change.affected_global_id.value,
            "type": managed.type_name,
        }
        if change.commit_metadata is not None:
            result["commit_metadata"] = self.metadata_to_dict(change.commit_metadata)
        if isinstance(change, (NewObject, ObjectRemoved)):
            return result

        prop_name = change.property_name  # type: ignore[attr-defined]
        mapped = managed.get_property(prop_name).mapped_type if managed.has_property(prop_name) else None
        result["property"] = prop_name

        if isinstance(change, (ValueChange, ReferenceChange)):
            result["left"] = self.encode_value(change.left, mapped)
            result["right"] = self.encode_value(change.right, mapped)
        elif isinstance(change, ListChange):
            item = mapped.item_type if isinstance(mapped, ContainerType) else None
            result["changes"] = [self._list_element_to_dict(e, item) for e in change.changes]
        elif isinstance(change, SetChange):
            item = mapped.item_type if isinstance(mapped, ContainerType) else None
            result["added"] = [self.encode_value(v, item) for v in change.added]
            result["removed"] = [self.encode_value(v, item) for v in change.removed]
        elif isinstance(change, MapChange):
            key_type = mapped.key_type if isinstance(mapped, MapType) else None
            value_type = mapped.value_type if isinstance(mapped, MapType) else None
            result["changes"] = [self._entry_to_dict(e, key_type, value_type) for e in change.changes]
        return result

    def _list_element_to_dict(self, element: Any, item: MappedType | None) -> dict[str, Any]:
        result: dict[str, Any] = {"element_change_type": element.kind.value, "index": element.index}
        if isinstance(element, ElementValueChange):
            result["left"] = self.encode_value(element.left, item)
            result["right"] = self.encode_value(element.right, item)
        else:
            result["value"] = self.encode_value(element.value, item)
        return result

    def _entry_to_dict(self, entry: Any, key_type: MappedType | None, value_type: MappedType | None) -> dict[str, Any]:
        result: dict[str, Any] = {
            "element_change_type": entry.kind.value,
            "key": self.encode_value(entry.key, key_type),
        }
        if isinstance(entry, EntryValueChange):
            result["left"] = self.encode_value(entry.left, value_type)
            result["right"] = self.encode_value(entry.right, value_type)
        else:
            result["value"] = self.encode_value(entry.value, value_type)
        return result

    def change_from_dict(self, data: dict[str, Any]) -> Change:
        kind = ChangeKind(data["change_type"])
        cls = CHANGE_CLASSES[kind]
        managed = self.registry.get_by_name(data["type"])
        global_id = self.global_id_from_json(data["global_id"], managed.type_name)
        metadata_raw = data.get("commit_metadata")
        metadata = self.metadata_from_dict(metadata_raw) if metadata_raw else None

        if kind in (ChangeKind.NEW_OBJECT, ChangeKind.OBJECT_REMOVED):
            return cls(global_id, commit_metadata=metadata)

        prop_name = data["property"]
        mapped = managed.get_property(prop_name).mapped_type if managed.has_property(prop_name) else None

        if kind in (ChangeKind.VALUE_CHANGE, ChangeKind.REFERENCE_CHANGE):
            return cls(  # type: ignore[call-arg]
                global_id,
                prop_name,
                self.decode_value(data.get("left"), mapped),
                self.decode_value(data.get("right"), mapped),
                commit_metadata=metadata,
            )
        if kind == ChangeKind.LIST_CHANGE:
            item = mapped.item_type if isinstance(mapped, ContainerType) else None
            elements = tuple(self._list_element_from_dict(e, item) for e in data.get("changes", []))
            return ListChange(global_id, prop_name, elements, commit_metadata=metadata)
        if kind == ChangeKind.SET_CHANGE:
            item = mapped.item_type if isinstance(mapped, ContainerType) else None
            return SetChange(
                global_id,
                prop_name,
                tuple(self.decode_value(v, item) for v in data.get("added", [])),
                tuple(self.decode_value(v, item) for v in data.get("removed", [])),
                commit_metadata=metadata,
            )
        key_type = mapped.key_type if isinstance(mapped, MapType) else None
        value_type = mapped.value_type if isinstance(mapped, MapType) else None
        entries = tuple(self._entry_from_dict(e, key_type, value_type) for e in data.get("changes", []))
        return MapChange(global_id, prop_name, entries, commit_metadata=metadata)

    def _list_element_from_dict(self, data: dict[str, Any], item: MappedType | None) -> Any:
        cls = ELEMENT_CHANGE_CLASSES[_element_kind(data)]
        index = int(data["index"])
        if cls is ElementValueChange:
            return ElementValueChange(index, self.decode_value(data["left"], item), self.decode_value(data["right"], item))
        if cls not in (ValueAdded, ValueRemoved):
            raise ValueError(f"Not a list element change: {data!r}")
        return cls(index, self.decode_value(data["value"], item))

    def _entry_from_dict(self, data: dict[str, Any], key_type: MappedType | None, value_type: MappedType | None) -> Any:
        cls = ELEMENT_CHANGE_CLASSES[_element_kind(data)]
        key = self.decode_value(data["key"], key_type)
        if cls is EntryValueChange:
            return EntryValueChange(key, self.decode_value(data["left"], value_type), self.decode_value(data["right"], value_type))
        if cls not in (EntryAdded, EntryRemoved):
            raise ValueError(f"Not a map entry change: {data!r}")
        return cls(key, self.decode_value(data["value"], value_type))

    # -------------------------------------------------------------------------
    # Diffs and commits
    # -------------------------------------------------------------------------

    def diff_to_dict(self, diff: Diff) -> dict[str, Any]:
        return {"changes": [self.change_to_dict(c) for c in diff.changes]}

    def diff_from_dict(self, data: dict[str, Any]) -> Diff:
        return Diff(tuple(self.change_from_dict(c) for c in data.get("changes", [])))

    def commit_to_dict(self, commit: Commit) -> dict[str, Any]:
        return {
            "metadata": self.metadata_to_dict(commit.metadata),
            "snapshots": [self.snapshot_to_dict(s) for s in commit.snapshots],
            "diff": self.diff_to_dict(commit.diff),
        }

    def commit_from_dict(self, data: dict[str, Any]) -> Commit:
        return Commit(
            metadata=self.metadata_from_dict(data["metadata"]),
            snapshots=tuple(self.snapshot_from_dict(s) for s in data.get("snapshots", [])),
            diff=self.diff_from_dict(data.get("diff", {})),
        )

    # -------------------------------------------------------------------------
    # JSON text
    # -------------------------------------------------------------------------

    def to_dict(self, obj: Any) -> Any:
        """Encode any supported object (or list of them)."""
        if isinstance(obj, (list, tuple)):
            return [self.to_dict(o) for o in obj]
        if isinstance(obj, GlobalId):
            return self.global_id_to_json(obj)
        if isinstance(obj, Change):
            return self.change_to_dict(obj)
        if isinstance(obj, CdoSnapshot):
            return self.snapshot_to_dict(obj)
        if isinstance(obj, Diff):
            return self.diff_to_dict(obj)
        if isinstance(obj, Commit):
            return self.commit_to_dict(obj)
        if isinstance(obj, CommitMetadata):
            return self.metadata_to_dict(obj)
        raise TypeError(f"Can't convert {type(obj).__name__} to JSON")

    def to_json(self, obj: Any, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(obj), indent=indent, ensure_ascii=False)

    def snapshot_from_json(self, text: str) -> CdoSnapshot:
        return self.snapshot_from_dict(json.loads(text))

    def change_from_json(self, text: str) -> Change:
        return self.change_from_dict(json.loads(text))

    def diff_from_json(self, text: str) -> Diff:
        return self.diff_from_dict(json.loads(text))

    def commit_from_json(self, text: str) -> Commit:
        return self.commit_from_dict(json.loads(text))

    def global_id_from_json_text(self, text: str) -> GlobalId:
        return self.global_id_from_json(json.loads(text))


def _element_kind(data: dict[str, Any]) -> ElementChangeKind:
    return ElementChangeKind(data["element_change_type"])
