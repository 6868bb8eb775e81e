"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from auditgraph.auditor import Auditor
from auditgraph.config import AuditConfig
from auditgraph.repository.api import SnapshotRepository

from domain_model import (
    Account,
    Address,
    Employer,
    Gadget,
    Invoice,
    Money,
    Node,
    Order,
    OrderLine,
    Person,
    Wallet,
)


class StepClock:
    """Deterministic commit dates, one minute apart."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


def register_domain(auditor: Auditor) -> Auditor:
    auditor.register_entity(Person)
    auditor.register_entity(Employer)
    auditor.register_entity(Node)
    auditor.register_entity(Order, "order_no")
    auditor.register_entity(Invoice)
    auditor.register_entity(Gadget)
    auditor.register_entity(Wallet)
    auditor.register_value_object(Address)
    auditor.register_value_object(OrderLine)
    auditor.register_value(Money)
    auditor.register_value_codec(
        Money,
        lambda m: {"amount": str(m.amount), "currency": m.currency},
        lambda d: Money(Decimal(d["amount"]), d["currency"]),
    )
    return auditor


@pytest.fixture
def make_auditor():
    """Factory for auditors with the test domain registered."""

    def _make(config: AuditConfig | None = None, repository: SnapshotRepository | None = None) -> Auditor:
        return register_domain(Auditor(config, repository, clock=StepClock()))

    return _make


@pytest.fixture
def auditor(make_auditor) -> Auditor:
    """In-memory auditor with default config."""
    return make_auditor()


@pytest.fixture
def getter_auditor() -> Auditor:
    """Auditor scanning getters instead of fields."""
    auditor = Auditor(AuditConfig(mapping_style="getters"), clock=StepClock())
    auditor.register_entity(Account)
    return auditor
