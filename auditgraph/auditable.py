"""
Repository audit adapter.

Hooks the auditor onto a data access layer: saved objects are committed and
deleted objects (or ids) are shallow-deleted. The ``audited`` decorator
wraps repository methods; the object handed to the wrapped call (its last
positional argument) is audited after the call returns.

Usage:
    class PersonRepository:
        @audited(auditor, Person, on="save", author=current_user)
        def save(self, person): ...

        @audited(auditor, Person, on="delete", author=current_user)
        def delete(self, person_or_id): ...
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Iterable, Literal, TypeVar

from .auditor import Auditor
from .metamodel.types import is_primitive_class

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

AuthorProvider = Callable[[], str]
AuditEvent = Literal["save", "delete"]


def unknown_author() -> str:
    return "unknown"


def _each(target: Any) -> Iterable[Any]:
    if isinstance(target, (list, tuple, set, frozenset)):
        return target
    return (target,)


class OnSaveAuditHandler:
    """Commits every saved domain object."""

    def __init__(self, auditor: Auditor, author_provider: AuthorProvider = unknown_author):
        self.auditor = auditor
        self.author_provider = author_provider

    def handle(self, saved: Any) -> None:
        author = self.author_provider()
        for domain_object in _each(saved):
            self.auditor.commit(author, domain_object)


class OnDeleteAuditHandler:
    """Shallow-deletes domain objects, or entities by bare id value."""

    def __init__(
        self,
        auditor: Auditor,
        domain_class: type | None = None,
        author_provider: AuthorProvider = unknown_author,
    ):
        self.auditor = auditor
        self.domain_class = domain_class
        self.author_provider = author_provider

    def handle(self, deleted: Any) -> None:
        """
        Raises:
            ValueError: an element is neither a managed domain object nor an id value
        """
        author = self.author_provider()
        for target in _each(deleted):
            if self.auditor.registry.is_managed_instance(target):
                self.auditor.commit_shallow_delete(author, target)
            elif self.domain_class is not None and target is not None and is_primitive_class(type(target)):
                global_id = self.auditor.instance_id(self.domain_class, target)
                self.auditor.commit_shallow_delete_by_id(author, global_id)
            else:
                raise ValueError("Domain object or object id expected")


def audited(
    auditor: Auditor,
    domain_class: type | None = None,
    *,
    on: AuditEvent = "save",
    author: AuthorProvider = unknown_author,
) -> Callable[[F], F]:
    """
    Decorate a repository method so its argument is audited after it returns.

    Args:
        auditor: Engine to commit into
        domain_class: Entity class, needed to delete by bare id
        on: "save" commits the object, "delete" shallow-deletes it
        author: Supplies the commit author per call
    """
    if on == "save":
        handler: OnSaveAuditHandler | OnDeleteAuditHandler = OnSaveAuditHandler(auditor, author)
    elif on == "delete":
        handler = OnDeleteAuditHandler(auditor, domain_class, author)
    else:
        raise ValueError(f"on must be 'save' or 'delete', got {on!r}")

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = func(*args, **kwargs)
            if args:
                handler.handle(args[-1])
            else:
                logger.debug(f"{func.__qualname__} called without a positional argument, nothing audited")
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
