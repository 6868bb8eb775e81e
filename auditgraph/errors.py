"""
Error kinds raised by the auditing engine.

Every failure the engine raises on purpose is an AuditError tagged with an
ErrorCode. Validation errors surface from the call that provoked them;
storage errors are raised by the repository adapters and pass through the
core unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    TYPE_NOT_MAPPED = "type_not_mapped"  # Container item / annotation could not be resolved
    ENTITY_WITHOUT_ID = "entity_without_id"  # Zero or several id properties
    PROPERTY_NOT_FOUND = "property_not_found"  # Explicit id property absent on class
    NOT_INSTANCE_NOR_ID = "not_instance_nor_id"  # Neither a managed object nor a GlobalId
    AFFECTED_CDO_IS_NOT_AVAILABLE = "affected_cdo_is_not_available"  # History of an unknown id
    STORAGE_FAILURE = "storage_failure"  # Raised by a repository adapter
    ENTITY_INSTANCE_WITH_NULL_ID = "entity_instance_with_null_id"
    TYPE_NAME_NOT_FOUND = "type_name_not_found"  # JSON names a class the mapper never saw
    MALFORMED_GLOBAL_ID = "malformed_global_id"


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.TYPE_NOT_MAPPED: "Can't map type {0!r}: {1}",
    ErrorCode.ENTITY_WITHOUT_ID: "Entity {0} should have exactly one id property, found {1}",
    ErrorCode.PROPERTY_NOT_FOUND: "Property {0!r} not found in class {1}",
    ErrorCode.NOT_INSTANCE_NOR_ID: "Expected a managed domain object or a GlobalId, got {0!r}",
    ErrorCode.AFFECTED_CDO_IS_NOT_AVAILABLE: "No snapshots recorded for {0}",
    ErrorCode.STORAGE_FAILURE: "Storage failure: {0}",
    ErrorCode.ENTITY_INSTANCE_WITH_NULL_ID: "Found instance of entity {0} with null id property {1!r}",
    ErrorCode.TYPE_NAME_NOT_FOUND: "Type name {0!r} is not known to the type mapper",
    ErrorCode.MALFORMED_GLOBAL_ID: "Malformed global id {0!r}",
}


class AuditError(Exception):
    """
    Engine failure with a machine-readable code.

    Args are formatted into the message template registered for the code.
    """

    def __init__(self, code: ErrorCode, *args: Any):
        self.code = code
        self.args_ = args
        template = _MESSAGES.get(code, "{0}")
        try:
            message = template.format(*args)
        except (IndexError, KeyError):
            message = f"{code.value}: {args!r}"
        super().__init__(message)

    def __repr__(self) -> str:
        return f"AuditError({self.code.name}, {str(self)!r})"
