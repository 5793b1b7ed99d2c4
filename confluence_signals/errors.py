"""Exception hierarchy for the signal engine."""


class SignalEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SignalEngineError):
    """Invalid engine setup (fatal at startup)."""


class PriceFetchError(SignalEngineError):
    """Price source failed to deliver a quote."""


class IndicatorError(SignalEngineError):
    """Indicator source could not evaluate a symbol."""


class PersistenceError(SignalEngineError):
    """Signal store failed to read or write."""


class DuplicateSignalError(PersistenceError):
    """A signal with the same id already exists."""


class SignalNotFoundError(SignalEngineError):
    """No signal exists for the requested id."""
