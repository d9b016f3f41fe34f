"""
Launcher Errors

Enumeration errors abort the whole sweep before any worker starts.
Dispatch errors are per work item and never cascade to siblings.
"""


class LauncherError(Exception):
    """Base exception for the batch launcher."""


class ConfigError(LauncherError):
    """Sweep or earliest-date document is missing, invalid, or inconsistent."""


class InvalidRangeError(ConfigError, ValueError):
    """Range step is zero or product factor is below 2."""


class InvalidDateError(ConfigError, ValueError):
    """Start date cannot be parsed or window duration is not positive."""


class UnknownSymbolError(ConfigError, KeyError):
    """A symbol has no earliest-data-date entry."""

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self) -> str:
        return f"No earliest data date for symbol '{self.symbol}'"


class EncodingError(LauncherError, ValueError):
    """Argument text cannot be carried through the command line unambiguously."""


class LockContentionError(OSError):
    """Shared file is momentarily held elsewhere. Retried under the lock."""


class WorkerLaunchError(LauncherError):
    """The OS failed to start a worker process."""
