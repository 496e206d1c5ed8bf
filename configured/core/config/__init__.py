"""
Configuration management for configured.

This module provides the option declarations, the type coercion rules, the
file formats and the :class:`Config` registry that reconciles declared options
with a configuration file.
"""

from .coercion import (
    ValueType,
    ValueKind,
    TypeSpec,
    classify,
    coerce,
)
from .option import (
    ConfigOption,
    format_default_value,
)
from .formats import (
    ConfigFormat,
    BaseFormat,
    YAMLFormat,
    JSONFormat,
    TOMLFormat,
    WriteOptions,
    FormatRegistry,
    get_config_format,
    get_format_info,
)
from .registry import (
    Config,
    VERSION_KEY,
    VERSION_OPTION,
)

__all__ = [
    # Coercion
    "ValueType",
    "ValueKind",
    "TypeSpec",
    "classify",
    "coerce",
    # Options
    "ConfigOption",
    "format_default_value",
    # Formats
    "ConfigFormat",
    "BaseFormat",
    "YAMLFormat",
    "JSONFormat",
    "TOMLFormat",
    "WriteOptions",
    "FormatRegistry",
    "get_config_format",
    "get_format_info",
    # Registry
    "Config",
    "VERSION_KEY",
    "VERSION_OPTION",
]
