"""Test data factories for deterministic test data generation."""

from tests.factories.notifications import make_intent, make_record, make_recipient

__all__ = [
    "make_intent",
    "make_record",
    "make_recipient",
]
