"""
Base classes with minimal dependencies.

This module provides the exception hierarchy that the config and
localization packages build upon.
"""

from .exceptions import (
    ConfiguredError,
    ConfigurationError,
    DuplicateOptionError,
    UnregisteredOptionError,
    UnsupportedFormatError,
    CoercionError,
    FormatError,
    FormatParseError,
    FormatWriteError,
)

__all__ = [
    "ConfiguredError",
    "ConfigurationError",
    "DuplicateOptionError",
    "UnregisteredOptionError",
    "UnsupportedFormatError",
    "CoercionError",
    "FormatError",
    "FormatParseError",
    "FormatWriteError",
]
