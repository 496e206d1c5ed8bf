"""
Config option declarations.

A :class:`ConfigOption` is an immutable declaration of one configuration
value: its key, default value, declared type and the documentation written
next to it. Builder-style methods return modified copies, so an option can be
shared between configs without aliasing.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Tuple

from .coercion import TypeLike, TypeSpec, ValueType, coerce

Listener = Callable[[Any], None]


def format_default_value(value: Any) -> str:
    """Render a default value for use in a description.

    Sequences and sets render as ``[a, b, c]``, booleans as ``true``/``false``
    and ``None`` as ``null``. This is independent of how the value is
    serialized by a format.

    Parameters
    ----------
    value : Any
        Value to render

    Returns
    -------
    str
        Textual representation
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (set, frozenset)):
        try:
            value = sorted(value)
        except TypeError:
            value = list(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_default_value(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{format_default_value(k)}={format_default_value(v)}"
                               for k, v in value.items()) + "}"
    return str(value)


def _strip(text: Optional[str]) -> Optional[str]:
    return None if text is None else text.strip()


@dataclass(frozen=True, eq=False)
class ConfigOption:
    """A single named, typed and defaulted configuration value.

    Two options are equal if and only if their keys are equal.

    Attributes
    ----------
    key : str
        Key of the option in the config file
    default_value : Any
        Value used when the file does not provide one
    type_spec : TypeSpec
        Declared type used to coerce loaded values
    description : str, optional
        Comment written right above the option
    header : str, optional
        Comment written above the description, followed by a blank line
    footer : str, optional
        Comment written below the option, after a blank line
    hidden : bool
        Omit the option from the file while it holds its default value
    listeners : tuple
        Callables invoked with the resolved value after every load
    old_keys : tuple
        Legacy keys the value is migrated from
    """

    key: str
    default_value: Any
    type_spec: TypeSpec
    description: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None
    hidden: bool = False
    listeners: Tuple[Listener, ...] = field(default=(), repr=False)
    old_keys: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "description", _strip(self.description))
        object.__setattr__(self, "header", _strip(self.header))
        object.__setattr__(self, "footer", _strip(self.footer))

    @classmethod
    def of(cls, key: str, default_value: Any, *element_types: TypeLike,
           value_type: Optional[ValueType] = None) -> "ConfigOption":
        """Create an option, inferring its type from the default value.

        Parameters
        ----------
        key : str
            Key of the option
        default_value : Any
            Default value of the option
        *element_types
            Element type for list and set options, or key and value types
            for map options. Python types (``str``, ``int``...), ``ValueType``
            members and ``TypeSpec`` instances are accepted.
        value_type : ValueType, optional
            Explicit type, e.g. ``ValueType.CHAR`` for a single character or
            ``ValueType.SHORT`` for a 16-bit integer

        Returns
        -------
        ConfigOption
            New option

        Examples
        --------
        >>> ConfigOption.of("list", ["a", "b"], str).type_spec.describe()
        'list[string]'
        """
        spec = TypeSpec.infer(default_value, element_types, value_type)
        return cls(key, default_value, spec)

    @classmethod
    def of_object(cls, key: str, default_value: Any = None) -> "ConfigOption":
        """Create an option that accepts values of any type."""
        return cls(key, default_value, TypeSpec(ValueType.ANY))

    def coerce(self, raw: Any) -> Any:
        """Convert a raw loaded value to this option's declared type.

        Raises
        ------
        CoercionError
            If the value cannot be converted
        """
        return coerce(raw, self.type_spec)

    def accepts(self, value: Any) -> bool:
        return self.type_spec.accepts(value)

    def with_description(self, description: str) -> "ConfigOption":
        return replace(self, description=description)

    def with_header(self, header: str) -> "ConfigOption":
        return replace(self, header=header)

    def with_footer(self, footer: str) -> "ConfigOption":
        return replace(self, footer=footer)

    def as_hidden(self) -> "ConfigOption":
        """Hidden options are loaded but not written while at their default."""
        return replace(self, hidden=True)

    def on_load(self, listener: Listener) -> "ConfigOption":
        """Add a listener called with the resolved value after every load."""
        return replace(self, listeners=self.listeners + (listener,))

    def with_old_keys(self, *old_keys: str) -> "ConfigOption":
        """Add legacy keys whose value is migrated to this option on load."""
        return replace(self, old_keys=self.old_keys + tuple(old_keys))

    def append_default_value(self) -> "ConfigOption":
        """Append ``Default: <value>`` to the description on a new line."""
        return self._append_default("\n")

    def append_inlined_default_value(self) -> "ConfigOption":
        """Append ``Default: <value>`` to the description on the same line."""
        return self._append_default(" ")

    def append_parenthesized_default_value(self) -> "ConfigOption":
        """Append ``(Default: <value>)`` to the description on the same line."""
        return self._append_default(" ", parenthesized=True)

    def _append_default(self, separator: str, parenthesized: bool = False) -> "ConfigOption":
        text = f"Default: {format_default_value(self.default_value)}"
        if parenthesized:
            text = f"({text})"
        if self.description is not None:
            text = self.description + separator + text
        return replace(self, description=text)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ConfigOption) and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

