"""Exception hierarchy shared by the tracker."""

from __future__ import annotations


class SignalTrackerError(Exception):
    """Base class for all tracker errors."""


class ConfigurationError(SignalTrackerError):
    """Invalid or incomplete configuration; aborts a scan before it starts."""


class SourceError(SignalTrackerError):
    """An upstream source failed (network, blocked, malformed payload)."""

    def __init__(self, strategy: str, reason: str) -> None:
        super().__init__(f"{strategy}: {reason}")
        self.strategy = strategy
        self.reason = reason


class StrategyTimeout(SourceError):
    """A strategy fetch exceeded its timeout."""


class StrategyUnavailable(SourceError):
    """A strategy cannot run for this company (missing locator or credentials)."""


class DeliveryError(SignalTrackerError):
    """A notification sink could not deliver a candidate."""


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "SignalTrackerError",
    "SourceError",
    "StrategyTimeout",
    "StrategyUnavailable",
]
