"""Common exceptions for the hapticsync system."""


class HapticSyncError(Exception):
    """Base exception for all hapticsync errors."""

    pass


class PatternError(HapticSyncError):
    """Pattern registration or lookup error."""

    pass


class ValidationError(HapticSyncError):
    """Input validation error."""

    pass


class ConfigurationError(HapticSyncError):
    """Configuration error."""

    pass


class DeviceError(HapticSyncError):
    """Device I/O or capability error."""

    pass


class FunscriptError(HapticSyncError):
    """Malformed or unreadable funscript."""

    pass


class ExpressionError(HapticSyncError):
    """Custom pattern expression rejected by the sandbox."""

    pass


class CommunicationError(HapticSyncError):
    """Communication or network error."""

    pass
