"""
Exception hierarchy for configured.

This module defines all custom exceptions used throughout the package.
Structural errors (duplicate or unregistered options, unknown formats) are
raised to the caller, while data errors (coercion, parse and write failures)
are caught at the load/save boundary of a config and logged.
"""

from typing import Optional, Any, Dict


class ConfiguredError(Exception):
    """Root of every error raised by configured.

    Carries a ``details`` mapping (file, option key, format, target type)
    that is appended to the message, and the low-level exception that was
    wrapped, if any.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        """
        Parameters
        ----------
        message : str
            What went wrong
        details : dict, optional
            Context such as ``config_file`` or ``parameter``
        cause : Exception, optional
            Wrapped parser, serializer or OS error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        text = self.message
        if self.details:
            context = ", ".join(f"{k}={v}" for k, v in self.details.items())
            text += f" (Details: {context})"
        if self.cause:
            text += f" (Caused by: {self.cause})"
        return text

    def add_detail(self, key: str, value: Any) -> "ConfiguredError":
        """Attach context, e.g. the file an error surfaced in, and return self."""
        self.details[key] = value
        return self

    def get_detail(self, key: str, default: Any = None) -> Any:
        return self.details.get(key, default)


class ConfigurationError(ConfiguredError):
    """Raised when a config is declared or used incorrectly.

    These errors signal programming mistakes and are never swallowed.
    """

    def __init__(self, message: str, config_file: Optional[str] = None,
                 parameter: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Parameters
        ----------
        message : str
            Configuration error message
        config_file : str, optional
            Path to the configuration file involved
        parameter : str, optional
            Key of the problematic option
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if config_file is not None:
            details['config_file'] = config_file
        if parameter is not None:
            details['parameter'] = parameter

        super().__init__(message, details=details, **kwargs)
        self.config_file = config_file
        self.parameter = parameter


class DuplicateOptionError(ConfigurationError):
    """Raised when an option with an already registered key is registered."""
    pass


class UnregisteredOptionError(ConfigurationError):
    """Raised when setting the value of an option that was never registered."""
    pass


class UnsupportedFormatError(ConfigurationError):
    """Raised when no format is known for a file extension."""
    pass


class CoercionError(ConfiguredError):
    """Raised when a raw value cannot be converted to the declared type.

    Only raised inside the coercion layer; a config catches it per key
    and falls back to the option's default value.
    """

    def __init__(self, message: str, value: Optional[Any] = None,
                 target: Optional[str] = None, **kwargs):
        """Initialize coercion error.

        Parameters
        ----------
        message : str
            Coercion error message
        value : Any, optional
            Raw value that could not be converted
        target : str, optional
            Name of the requested target type
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if target is not None:
            details['target'] = target

        super().__init__(message, details=details, **kwargs)
        self.value = value
        self.target = target


class FormatError(ConfiguredError):
    """Raised when a config format fails to read or write a file."""

    def __init__(self, message: str, config_file: Optional[str] = None,
                 format_name: Optional[str] = None, **kwargs):
        """Initialize format error.

        Parameters
        ----------
        message : str
            Format error message
        config_file : str, optional
            Path to the file being read or written
        format_name : str, optional
            Human-readable name of the format
        **kwargs
            Additional arguments for base class
        """
        details = kwargs.pop('details', {})
        if format_name is not None:
            details['format'] = format_name

        super().__init__(message, details=details, **kwargs)
        self.config_file = config_file
        self.format_name = format_name


class FormatParseError(FormatError):
    """Raised when a config file is unreadable or malformed."""
    pass


class FormatWriteError(FormatError):
    """Raised when a config file cannot be written."""
    pass
