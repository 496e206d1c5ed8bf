"""
configured: code-first configuration files.

Options are declared in code with their defaults, types and descriptions;
the config file is generated from them and loaded back with every value
coerced to its declared type. YAML, JSON, JSONC and TOML files are supported.
"""

__version__ = "1.0.0"
__author__ = "Clickism"

from configured.core.base.exceptions import ConfiguredError, ConfigurationError
from configured.core.config import (
    Config,
    ConfigOption,
    ConfigFormat,
    FormatRegistry,
    JSONFormat,
    TOMLFormat,
    ValueType,
    WriteOptions,
    YAMLFormat,
    get_config_format,
    get_format_info,
)
from configured.core.localization import Localization, LocalizationKey, ParameterTable

# Public API
__all__ = [
    "__version__",
    "ConfiguredError",
    "ConfigurationError",
    "Config",
    "ConfigOption",
    "ConfigFormat",
    "FormatRegistry",
    "JSONFormat",
    "TOMLFormat",
    "ValueType",
    "WriteOptions",
    "YAMLFormat",
    "get_config_format",
    "get_format_info",
    "Localization",
    "LocalizationKey",
    "ParameterTable",
]


def get_version():
    """Get the version string."""
    return __version__


def get_info():
    """Get package information."""
    return {
        "version": __version__,
        "author": __author__,
        "formats": sorted(get_format_info()),
    }
