from __future__ import annotations


class NotifierError(RuntimeError):
    """Base class for all notifier failures."""


class ProviderError(NotifierError):
    """Raised when a calendar or contacts source cannot be queried."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.reason = message


class DeliveryError(NotifierError):
    """Raised when the messaging channel rejects or cannot receive a message."""


class ConfigurationError(NotifierError):
    """Raised when required startup configuration is missing or invalid."""
