"""
Property scanning: which members of a domain class take part in auditing.

Two strategies exist and exactly one is active per engine:

- fields: dataclass fields, or class annotations walked base-first along
  the MRO. ClassVar/InitVar, dunder names and transient members are skipped;
  private members (``_x``) are included.
- getters: ``property`` objects plus zero-argument ``get_x()``/``is_x()``
  methods, typed by their return annotation.

Properties are read-only views. Snapshots are reconstructed from stored
state, never written back through a Property.
"""

from __future__ import annotations

import dataclasses
import inspect
import operator
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Literal, Mapping, NamedTuple

from ..errors import AuditError, ErrorCode
from .type_mapper import TypeMapper
from .types import Id, MappedType, Transient

MappingStyle = Literal["fields", "getters"]


@dataclass(frozen=True)
class Property:
    """A readable member of a managed class with its resolved type."""

    name: str
    mapped_type: MappedType
    declaring_class: type
    getter: Callable[[Any], Any] = field(compare=False, repr=False)
    is_id: bool = False
    annotations: tuple[Any, ...] = field(default=(), compare=False, repr=False)
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def get(self, target: Any) -> Any:
        return self.getter(target)

    def is_null(self, target: Any) -> bool:
        return self.get(target) is None


IdPredicate = Callable[[Property], bool]


def default_id_predicate(prop: Property) -> bool:
    """Accepts ``Annotated[T, Id]`` and ``field(metadata={"id": True})``."""
    return any(a is Id for a in prop.annotations) or bool(prop.metadata.get("id"))


class _Member(NamedTuple):
    name: str
    hint: Any
    getter: Callable[[Any], Any]
    metadata: Mapping[str, Any]


def _extras(hint: Any) -> tuple[Any, ...]:
    if typing.get_origin(hint) is typing.Annotated:
        return tuple(getattr(hint, "__metadata__", ()))
    return ()


def _type_hints(obj: Any, owner: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except NameError as e:
        raise AuditError(ErrorCode.TYPE_NOT_MAPPED, owner.__qualname__, str(e)) from e


def _is_class_var(hint: Any) -> bool:
    if hint is typing.ClassVar:
        return True
    origin = typing.get_origin(hint)
    if origin is typing.Annotated:
        return _is_class_var(typing.get_args(hint)[0])
    return origin is typing.ClassVar


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


class PropertyScanner(ABC):
    """Enumerates the properties of a class and resolves their types."""

    style: MappingStyle

    def __init__(self, type_mapper: TypeMapper, id_predicate: IdPredicate | None = None):
        self.type_mapper = type_mapper
        self.id_predicate = id_predicate or default_id_predicate

    def scan(self, cls: type) -> list[Property]:
        """
        Scan cls in declaration order (inherited members first).

        Raises:
            AuditError(TYPE_NOT_MAPPED): a member's type can't be resolved
        """
        properties: list[Property] = []
        for member in self._members(cls):
            extras = _extras(member.hint)
            if any(e is Transient for e in extras):
                continue
            prop = Property(
                name=member.name,
                mapped_type=self.type_mapper.get_type(member.hint),
                declaring_class=cls,
                getter=member.getter,
                annotations=extras,
                metadata=dict(member.metadata),
            )
            if self.id_predicate(prop):
                prop = dataclasses.replace(prop, is_id=True)
            properties.append(prop)
        return properties

    @abstractmethod
    def _members(self, cls: type) -> Iterator[_Member]:
        ...


class FieldBasedPropertyScanner(PropertyScanner):
    style: MappingStyle = "fields"

    def _members(self, cls: type) -> Iterator[_Member]:
        hints = _type_hints(cls, cls)

        if dataclasses.is_dataclass(cls):
            for f in dataclasses.fields(cls):
                if f.metadata.get("transient") or _is_dunder(f.name):
                    continue
                yield _Member(f.name, hints.get(f.name, f.type), _field_getter(f.name), f.metadata)
            return

        names: list[str] = []
        for klass in reversed(cls.__mro__):
            for name in klass.__dict__.get("__annotations__", {}):
                if name not in names:
                    names.append(name)

        for name in names:
            hint = hints.get(name, typing.Any)
            if _is_dunder(name) or _is_class_var(hint) or isinstance(hint, dataclasses.InitVar):
                continue
            yield _Member(name, hint, _field_getter(name), {})


class GetterBasedPropertyScanner(PropertyScanner):
    style: MappingStyle = "getters"

    def _members(self, cls: type) -> Iterator[_Member]:
        members: dict[str, _Member] = {}

        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            for attr_name, attr in klass.__dict__.items():
                if attr_name.startswith("_"):
                    continue
                if isinstance(attr, property) and attr.fget is not None:
                    hint = _type_hints(attr.fget, cls).get("return", typing.Any)
                    members[attr_name] = _Member(attr_name, hint, operator.attrgetter(attr_name), {})
                    continue
                name = _getter_property_name(attr_name)
                if name is None or not inspect.isfunction(attr) or not _takes_only_self(attr):
                    continue
                hint = _type_hints(attr, cls).get("return", typing.Any)
                members[name] = _Member(name, hint, operator.methodcaller(attr_name), {})

        yield from members.values()


def _field_getter(name: str) -> Callable[[Any], Any]:
    def get(target: Any) -> Any:
        return getattr(target, name, None)

    return get


def _getter_property_name(attr_name: str) -> str | None:
    for prefix in ("get_", "is_"):
        if attr_name.startswith(prefix) and len(attr_name) > len(prefix):
            return attr_name[len(prefix):]
    return None


def _takes_only_self(func: Callable[..., Any]) -> bool:
    try:
        params = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        return False
    return len(params) == 1


def create_scanner(
    style: MappingStyle,
    type_mapper: TypeMapper,
    id_predicate: IdPredicate | None = None,
) -> PropertyScanner:
    if style == "fields":
        return FieldBasedPropertyScanner(type_mapper, id_predicate)
    if style == "getters":
        return GetterBasedPropertyScanner(type_mapper, id_predicate)
    raise ValueError(f"mapping_style must be 'fields' or 'getters', got {style!r}")
