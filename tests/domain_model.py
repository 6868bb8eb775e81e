"""Domain classes shared by the tests (module level so annotations resolve)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Annotated, Any, ClassVar, Optional
from uuid import UUID

from auditgraph import Id, Transient


@dataclass(frozen=True)
class Address:
    city: str
    street: str = ""


@dataclass
class Person:
    id: Annotated[Optional[str], Id]
    name: str = ""
    address: Optional[Address] = None
    nicknames: Optional[list[str]] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    scores: dict[str, int] = field(default_factory=dict)
    cache: Annotated[str, Transient] = ""


@dataclass
class Employer:
    id: Annotated[int, Id]
    boss: Optional[Person] = None
    staff: list[Person] = field(default_factory=list)


@dataclass
class Node:
    id: Annotated[str, Id]
    label: str = ""
    next: Optional[Node] = None


@dataclass(frozen=True)
class OrderLine:
    product: str
    quantity: int = 1


@dataclass
class Order:
    order_no: int
    lines: list[OrderLine] = field(default_factory=list)
    notes: Any = None


@dataclass
class Invoice:
    number: str = field(metadata={"id": True})
    total: Decimal = Decimal("0")
    draft: str = field(default="", metadata={"transient": True})


class Color(Enum):
    RED = "red"
    GREEN = "green"


@dataclass
class Gadget:
    id: Annotated[str, Id]
    created: Optional[datetime] = None
    price: Optional[Decimal] = None
    color: Optional[Color] = None
    ratio: Optional[Fraction] = None
    uid: Optional[UUID] = None
    data: Optional[bytes] = None
    duration: Optional[timedelta] = None
    impedance: Optional[complex] = None
    by_year: dict[int, str] = field(default_factory=dict)
    dims: tuple[int, ...] = ()
    locations: set[Address] = field(default_factory=set)
    links: dict[str, Address] = field(default_factory=dict)
    lookup: dict[Address, str] = field(default_factory=dict)


class Money:
    """Value class compared as a whole."""

    def __init__(self, amount: Decimal, currency: str):
        self.amount = amount
        self.currency = currency

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Money) and (self.amount, self.currency) == (other.amount, other.currency)

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __repr__(self) -> str:
        return f"Money({self.amount} {self.currency})"


@dataclass
class Wallet:
    id: Annotated[str, Id]
    balance: Optional[Money] = None


class Plain:
    kind: ClassVar[str] = "plain"
    _secret: int
    label: str

    def __init__(self, label: str):
        self.label = label


class Account:
    def __init__(self, number: str, owner: str, active: bool = True):
        self._number = number
        self._owner = owner
        self._active = active

    @property
    def number(self) -> Annotated[str, Id]:
        return self._number

    def get_owner(self) -> str:
        return self._owner

    def is_active(self) -> bool:
        return self._active

    def get_balance_for(self, currency: str) -> int:
        return 0
