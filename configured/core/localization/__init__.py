"""
Localization for configured.

Per-language message files managed through :class:`~configured.core.config.Config`,
with a fallback language and named message parameters.
"""

from .keys import (
    LocalizationKey,
    ParameterTable,
    resolve_key,
)
from .localization import Localization

__all__ = [
    "LocalizationKey",
    "ParameterTable",
    "resolve_key",
    "Localization",
]
