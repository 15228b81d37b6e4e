#!/usr/bin/env python3
"""
Error types raised by the chain learner, the text synthesizer and the chain store.

Every failure surfaced by the core derives from ChainError, so callers such as
the HTTP layer can catch one type and still log the specific subclass.
"""


class ChainError(Exception):
    """Base class for all chain learning and generation failures."""


class ValidationError(ChainError):
    """Caller input is outside the declared bounds."""

    def __init__(self, field, message):
        self.field = field
        super().__init__(f"{field}: {message}")


class StorageError(ChainError):
    """A query against the chain store failed or no connection was available."""


class EstimationError(ChainError):
    """No usable length distribution could be fit from the recorded texts."""


class SamplingError(ChainError):
    """A weighted choice was attempted over weights that cannot select anything."""
