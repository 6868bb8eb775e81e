"""
Type mapper: classifies annotations and classes into mapped types.

Classification order:
1. Explicit registration (entity / value object / value), inherited by
   subclasses that are not registered themselves.
2. Primitive table (numbers, strings, temporals, enums, ...).
3. Container and map shapes, with their item types mapped recursively.
4. The configured default for everything else (value object unless told
   otherwise), logged as a warning once per class.

Results are cached per annotation. Population is first-write-wins: two
threads mapping the same annotation may both compute a descriptor, but only
the first one published is ever returned.
"""

from __future__ import annotations

import collections
import collections.abc
import logging
import threading
import types
import typing
from typing import Any, Literal

from ..errors import AuditError, ErrorCode
from .types import (
    ArrayType,
    EntityType,
    ListType,
    MappedType,
    MapType,
    PrimitiveType,
    SetType,
    ValueObjectType,
    ValueType,
    is_managed,
    is_primitive_class,
    is_primitive_or_value,
)

logger = logging.getLogger(__name__)

DefaultClassType = Literal["value_object", "value"]

_LIST_ORIGINS = frozenset({
    list,
    collections.deque,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
})
_SET_ORIGINS = frozenset({
    set,
    frozenset,
    collections.abc.Set,
    collections.abc.MutableSet,
})
_MAP_ORIGINS = frozenset({
    dict,
    collections.OrderedDict,
    collections.defaultdict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
})
_BARE_CONTAINERS = _LIST_ORIGINS | _SET_ORIGINS | _MAP_ORIGINS | {tuple}

_OPAQUE = ValueType(object)


class TypeMapper:
    """Maps declared types to MappedType descriptors (thread-safe cache)."""

    def __init__(self, *, default_class_type: DefaultClassType = "value_object"):
        if default_class_type not in ("value_object", "value"):
            raise ValueError(f"default_class_type must be 'value_object' or 'value', got {default_class_type!r}")
        self.default_class_type = default_class_type
        self._lock = threading.Lock()
        self._registered: dict[type, MappedType] = {}
        self._cache: dict[Any, MappedType] = {}
        self._by_name: dict[str, MappedType] = {}
        self._warned: set[type] = set()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_entity(
        self,
        cls: type,
        id_property: str | None = None,
        *,
        type_name: str | None = None,
    ) -> EntityType:
        """Register cls as an Entity, optionally naming its id property."""
        mapped = EntityType(cls, type_name=type_name or cls.__name__, id_property_name=id_property)
        self._register(cls, mapped)
        return mapped

    def register_value_object(self, cls: type, *, type_name: str | None = None) -> ValueObjectType:
        """Register cls as a Value Object."""
        mapped = ValueObjectType(cls, type_name=type_name or cls.__name__)
        self._register(cls, mapped)
        return mapped

    def register_value(self, cls: type) -> ValueType:
        """Register cls as an opaque Value."""
        mapped = ValueType(cls)
        self._register(cls, mapped)
        return mapped

    def _register(self, cls: type, mapped: MappedType) -> None:
        with self._lock:
            if is_managed(mapped):
                existing = self._by_name.get(mapped.name)
                if (
                    existing is not None
                    and existing.base_class is not cls
                    and existing.base_class in self._registered
                ):
                    raise ValueError(
                        f"Type name {mapped.name!r} already used by {existing.base_class.__qualname__}"
                    )
            self._registered[cls] = mapped
            # Registrations change classification of cached annotations
            self._cache.clear()
            self._by_name = {
                name: t
                for name, t in self._by_name.items()
                if t.base_class is not cls and t.base_class in self._registered
            }
            if is_managed(mapped):
                self._by_name[mapped.name] = mapped

    def registered_types(self) -> list[MappedType]:
        return list(self._registered.values())

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_type(self, hint: Any) -> MappedType:
        """
        Map an annotation (class, generic alias, Optional, Annotated...) to its type.

        Raises:
            AuditError(TYPE_NOT_MAPPED): container item types can't be resolved
        """
        try:
            cached = self._cache.get(hint)
        except TypeError:
            return self._infer(hint)
        if cached is not None:
            return cached

        mapped = self._infer(hint)
        with self._lock:
            mapped = self._cache.setdefault(hint, mapped)
            self._index_name(mapped)
        return mapped

    def get_class_type(self, cls: type) -> MappedType:
        """Classify a runtime class (e.g. the class of a graph root)."""
        return self.get_type(cls)

    def get_by_name(self, type_name: str) -> MappedType:
        """Resolve an Entity / Value Object name as used in global ids and JSON."""
        mapped = self._by_name.get(type_name)
        if mapped is None:
            raise AuditError(ErrorCode.TYPE_NAME_NOT_FOUND, type_name)
        return mapped

    def is_primitive_or_value(self, hint: Any) -> bool:
        return is_primitive_or_value(self.get_type(hint))

    def _index_name(self, mapped: MappedType) -> None:
        if not is_managed(mapped):
            return
        existing = self._by_name.setdefault(mapped.name, mapped)
        if existing.base_class is not mapped.base_class:
            logger.warning(
                f"Type name {mapped.name!r} of {mapped.base_class.__qualname__} "
                f"clashes with {existing.base_class.__qualname__}, register one of them with type_name="
            )

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def _infer(self, hint: Any) -> MappedType:
        if isinstance(hint, (str, typing.ForwardRef)):
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, "unresolved forward reference")

        if hint is typing.Any or hint is object or isinstance(hint, typing.TypeVar):
            return _OPAQUE
        if hint is None:
            return PrimitiveType(type(None))

        origin = typing.get_origin(hint)
        args = typing.get_args(hint)

        if origin is typing.Annotated:
            return self.get_type(args[0])

        if origin is typing.Union or origin is types.UnionType:
            non_null = [a for a in args if a is not type(None)]
            if len(non_null) == 1:
                return self.get_type(non_null[0])
            return _OPAQUE

        if origin is not None:
            return self._infer_generic(hint, origin, args)

        if not isinstance(hint, type):
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, "not a class")

        if hint in _BARE_CONTAINERS:
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, "container item type is not declared")

        return self._classify(hint)

    def _infer_generic(self, hint: Any, origin: Any, args: tuple[Any, ...]) -> MappedType:
        if origin in _LIST_ORIGINS:
            return ListType(origin, item_type=self._item(hint, args, 0))

        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return ArrayType(tuple, item_type=self._item(hint, args, 0))
            if not args:
                raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, "container item type is not declared")
            # Fixed-shape tuples are compared as a whole
            return ValueType(tuple)

        if origin in _SET_ORIGINS:
            return SetType(origin, item_type=self._item(hint, args, 0))

        if origin in _MAP_ORIGINS:
            return MapType(
                origin,
                key_type=self._item(hint, args, 0),
                value_type=self._item(hint, args, 1),
            )

        if isinstance(origin, type):
            # User generic, e.g. Box[int]: classify the generic class itself
            return self._classify(origin)

        raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, f"unsupported generic origin {origin!r}")

    def _item(self, hint: Any, args: tuple[Any, ...], position: int) -> MappedType:
        if len(args) <= position:
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, "container item type is not declared")
        try:
            return self.get_type(args[position])
        except AuditError:
            raise
        except Exception as e:
            raise AuditError(ErrorCode.TYPE_NOT_MAPPED, hint, str(e)) from e

    def _classify(self, cls: type) -> MappedType:
        registered = self._registered.get(cls)
        if registered is not None:
            return registered

        for base in cls.__mro__[1:]:
            inherited = self._registered.get(base)
            if inherited is None:
                continue
            if isinstance(inherited, EntityType):
                return EntityType(cls, type_name=cls.__name__, id_property_name=inherited.id_property_name)
            if isinstance(inherited, ValueObjectType):
                return ValueObjectType(cls, type_name=cls.__name__)
            return ValueType(cls)

        if is_primitive_class(cls):
            return PrimitiveType(cls)

        if self.default_class_type == "value":
            return ValueType(cls)

        if cls not in self._warned:
            self._warned.add(cls)
            logger.warning(
                f"Class {cls.__module__}.{cls.__qualname__} is neither registered nor primitive, "
                "mapping it as a value object"
            )
        return ValueObjectType(cls, type_name=cls.__name__)
