"""Fake implementations for external boundary clients used in tests."""

from .channels import RecordingChannel
from .clock import FrozenClock
from .providers import FakeBoundaryClientProvider, FakeDatabaseProvider, FakeDeliveryProvider

__all__ = [
    "FakeBoundaryClientProvider",
    "FakeDatabaseProvider",
    "FakeDeliveryProvider",
    "FrozenClock",
    "RecordingChannel",
]
