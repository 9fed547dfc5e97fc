"""
Typed errors for the hyperplane pool adapter.

Decode errors are fatal for an adapter instance; state errors are recoverable
by calling update() again; curve and fee errors always reject the quote.
"""

from typing import Optional


class HyperplaneError(Exception):
    """Base error for the adapter."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(HyperplaneError):
    """Adapter configuration is invalid."""


class SchemaError(HyperplaneError):
    """Account bytes do not match the expected layout or discriminator."""


class StateError(HyperplaneError):
    """Operation needs a synced snapshot but the adapter is not synced."""

    def __init__(self, message: str, state=None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.state = state


class CurveError(HyperplaneError):
    """Curve rejected the swap (zero or overflowing amounts, output beyond reserve)."""


class FeeConfigError(HyperplaneError):
    """Transfer-fee extension is malformed or the fee exceeds the amount."""


class InvalidMintError(HyperplaneError):
    """Mint is not one of the pool's two reserve mints."""


class UnsupportedModeError(HyperplaneError):
    """Requested swap mode is not supported."""
