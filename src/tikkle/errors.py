"""Exceptions raised by tikkle."""


class TikkleError(Exception):
    """Base class for user-facing tikkle errors."""


class ConfigurationError(TikkleError):
    """Configuration, credentials or mapping are missing or invalid."""


class InvalidDateRangeError(TikkleError):
    """A sync range expression could not be parsed."""
