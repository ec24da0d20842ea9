"""Failure taxonomy for the ingestion pipeline."""

from __future__ import annotations


class MalformedMessageError(ValueError):
    """Message cannot be interpreted as a reading (missing identity, bad body)."""


class ReadingValidationError(ValueError):
    """Reading violates a plausibility rule for its sensor type."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransientInfraError(RuntimeError):
    """A collaborator (store, broker) is temporarily unavailable."""


class TransportError(TransientInfraError):
    """Publishing to or consuming from the broker failed."""
