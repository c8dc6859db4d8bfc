"""
Testing utilities for tablelog.

Provides an in-memory table backend, event factories and protocol validators.
Pytest fixtures live in ``tablelog.testing.fixtures`` and require the test
extra: ``pip install tablelog[test]``.

Example:
    from tablelog.testing import InMemoryTableClient, validate_sink

    def test_my_sink():
        sink = MySink(InMemoryTableClient())
        assert validate_sink(sink).valid
"""

from .backend import BatchRejectedError, InMemoryTable, InMemoryTableClient
from .factories import BASE_TIME, create_batch_events, create_log_event
from .validators import (
    ProtocolViolationError,
    ValidationResult,
    validate_key_generator,
    validate_sink,
)

__all__ = [
    # Backend
    "InMemoryTableClient",
    "InMemoryTable",
    "BatchRejectedError",
    # Factories
    "BASE_TIME",
    "create_log_event",
    "create_batch_events",
    # Validators
    "validate_sink",
    "validate_key_generator",
    "ValidationResult",
    "ProtocolViolationError",
]
