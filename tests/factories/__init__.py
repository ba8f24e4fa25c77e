"""Test factories for generating test data."""

from tests.factories.record import RecordCreateFactory
from tests.factories.tenant import TenantFactory


__all__ = [
    "RecordCreateFactory",
    "TenantFactory",
]
