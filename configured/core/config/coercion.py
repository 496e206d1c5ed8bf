"""
Type coercion for deserialized config values.

Formats hand back dynamically typed data (bools, numbers, strings, lists,
mappings). Every option declares a :class:`TypeSpec`; this module classifies a
raw value into a :class:`ValueKind` and converts it to the declared
:class:`ValueType` through a table of per-target coercers.

Numeric narrowing follows fixed-width integer semantics: floats are truncated
toward zero and the result wraps in two's complement. No range check is made.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Union

from ..base.exceptions import CoercionError, ConfigurationError


class ValueType(Enum):
    """Declared type of an option or of an element inside a collection."""

    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    SHORT = "short"
    BYTE = "byte"
    DOUBLE = "double"
    FLOAT = "float"
    STRING = "string"
    CHAR = "char"
    LIST = "list"
    SET = "set"
    MAP = "map"
    ANY = "any"

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_BITS

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self in (ValueType.DOUBLE, ValueType.FLOAT)

    @property
    def is_collection(self) -> bool:
        return self in (ValueType.LIST, ValueType.SET, ValueType.MAP)


class ValueKind(Enum):
    """Runtime kind of a raw value produced by a format."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    SET = "set"
    MAPPING = "mapping"
    OTHER = "other"


_INTEGER_BITS = {
    ValueType.BYTE: 8,
    ValueType.SHORT: 16,
    ValueType.INT: 32,
    ValueType.LONG: 64,
}

_PYTHON_TYPES = {
    bool: ValueType.BOOLEAN,
    int: ValueType.LONG,
    float: ValueType.DOUBLE,
    str: ValueType.STRING,
    list: ValueType.LIST,
    tuple: ValueType.LIST,
    set: ValueType.SET,
    frozenset: ValueType.SET,
    dict: ValueType.MAP,
    object: ValueType.ANY,
}


def classify(value: Any) -> ValueKind:
    """Classify a raw value into its :class:`ValueKind`.

    Parameters
    ----------
    value : Any
        Value as returned by a format's ``read``

    Returns
    -------
    ValueKind
        Tag used to select a coercion rule
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if isinstance(value, (set, frozenset)):
        return ValueKind.SET
    if isinstance(value, dict):
        return ValueKind.MAPPING
    return ValueKind.OTHER


def value_type_of(value: Any) -> ValueType:
    """Infer the :class:`ValueType` of a default value."""
    for python_type, value_type in _PYTHON_TYPES.items():
        if python_type is not object and type(value) is python_type:
            return value_type
    kind = classify(value)
    if kind is ValueKind.BOOLEAN:
        return ValueType.BOOLEAN
    if kind is ValueKind.NUMBER:
        return ValueType.LONG if isinstance(value, int) else ValueType.DOUBLE
    if kind is ValueKind.STRING:
        return ValueType.STRING
    if kind is ValueKind.SEQUENCE:
        return ValueType.LIST
    if kind is ValueKind.SET:
        return ValueType.SET
    if kind is ValueKind.MAPPING:
        return ValueType.MAP
    return ValueType.ANY


TypeLike = Union["TypeSpec", ValueType, type, None]


@dataclass(frozen=True)
class TypeSpec:
    """Declared type of an option, including collection element types.

    Attributes
    ----------
    kind : ValueType
        Top-level declared type
    element : TypeSpec, optional
        Element type for ``LIST`` and ``SET``
    key : TypeSpec, optional
        Key type for ``MAP``
    value : TypeSpec, optional
        Value type for ``MAP``
    """

    kind: ValueType
    element: Optional["TypeSpec"] = None
    key: Optional["TypeSpec"] = None
    value: Optional["TypeSpec"] = None

    @classmethod
    def of(cls, type_like: TypeLike) -> "TypeSpec":
        """Build a spec from a ``TypeSpec``, a ``ValueType`` or a Python type.

        Raises
        ------
        ConfigurationError
            If the Python type has no corresponding value type
        """
        if isinstance(type_like, TypeSpec):
            return type_like
        if type_like is None or type_like is Any:
            return ANY_SPEC
        if isinstance(type_like, ValueType):
            kind = type_like
        elif type_like in _PYTHON_TYPES:
            kind = _PYTHON_TYPES[type_like]
        else:
            raise ConfigurationError(f"Unsupported option type: {type_like!r}")

        if kind in (ValueType.LIST, ValueType.SET):
            return cls(kind, element=ANY_SPEC)
        if kind is ValueType.MAP:
            return cls(kind, key=ANY_SPEC, value=ANY_SPEC)
        return cls(kind)

    @classmethod
    def infer(cls, default: Any, element_types: Sequence[TypeLike] = (),
              value_type: Optional[ValueType] = None) -> "TypeSpec":
        """Infer the spec of an option from its default value.

        Parameters
        ----------
        default : Any
            Default value of the option
        element_types : sequence
            Element type for lists and sets, or key and value types for maps.
            When omitted, they are inferred from the default's contents.
        value_type : ValueType, optional
            Explicit top-level type, e.g. ``ValueType.CHAR`` or ``ValueType.SHORT``

        Returns
        -------
        TypeSpec
            Declared type of the option

        Raises
        ------
        ConfigurationError
            If element types are given for a scalar, or too many are given
        """
        kind = value_type if value_type is not None else value_type_of(default)

        if kind in (ValueType.LIST, ValueType.SET):
            if len(element_types) > 1:
                raise ConfigurationError(f"{kind.value} options take one element type, "
                                         f"got {len(element_types)}")
            if element_types:
                element = cls.of(element_types[0])
            else:
                element = _common_spec(default or ())
            return cls(kind, element=element)

        if kind is ValueType.MAP:
            if len(element_types) not in (0, 2):
                raise ConfigurationError("map options take a key type and a value type")
            if element_types:
                return cls(kind, key=cls.of(element_types[0]), value=cls.of(element_types[1]))
            default = default or {}
            return cls(kind, key=_common_spec(default.keys()), value=_common_spec(default.values()))

        if element_types:
            raise ConfigurationError(f"Element types are only allowed for collections, "
                                     f"not for {kind.value}")
        return cls(kind)

    def accepts(self, value: Any) -> bool:
        """Check whether a held value can be returned for this spec as-is.

        This is a shallow check: collection contents are not inspected.
        """
        if self.kind is ValueType.ANY:
            return True
        kind = classify(value)
        if self.kind is ValueType.BOOLEAN:
            return kind is ValueKind.BOOLEAN
        if self.kind.is_integer:
            return kind is ValueKind.NUMBER and isinstance(value, int)
        if self.kind.is_numeric:
            return kind is ValueKind.NUMBER
        if self.kind is ValueType.STRING:
            return kind is ValueKind.STRING
        if self.kind is ValueType.CHAR:
            return kind is ValueKind.STRING and len(value) == 1
        if self.kind is ValueType.LIST:
            return kind is ValueKind.SEQUENCE
        if self.kind is ValueType.SET:
            return kind is ValueKind.SET
        if self.kind is ValueType.MAP:
            return kind is ValueKind.MAPPING
        return False

    def describe(self) -> str:
        """Readable name such as ``list[string]`` or ``map[string, long]``."""
        if self.kind in (ValueType.LIST, ValueType.SET) and self.element is not None:
            return f"{self.kind.value}[{self.element.describe()}]"
        if self.kind is ValueType.MAP and self.key is not None and self.value is not None:
            return f"map[{self.key.describe()}, {self.value.describe()}]"
        return self.kind.value


ANY_SPEC = TypeSpec(ValueType.ANY)


def _common_spec(values: Iterable[Any]) -> TypeSpec:
    """Spec shared by all ``values``, or ``ANY`` if they differ or are empty."""
    kinds = {value_type_of(value) for value in values if value is not None}
    if len(kinds) != 1:
        return ANY_SPEC
    kind = kinds.pop()
    if kind.is_collection:
        # Nested collections are not inspected further
        return TypeSpec.of(kind)
    return TypeSpec(kind)


def _fail(raw: Any, spec: TypeSpec, reason: str = "") -> CoercionError:
    message = f"Cannot coerce {type(raw).__name__} into {spec.describe()}"
    if reason:
        message += f": {reason}"
    return CoercionError(message, value=raw, target=spec.describe())


def _wrap_integer(value: int, bits: int) -> int:
    mask = (1 << bits) - 1
    value &= mask
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _coerce_boolean(raw: Any, kind: ValueKind, spec: TypeSpec) -> bool:
    if kind is ValueKind.BOOLEAN:
        return raw
    raise _fail(raw, spec)


def _coerce_integer(raw: Any, kind: ValueKind, spec: TypeSpec) -> int:
    if kind is not ValueKind.NUMBER:
        raise _fail(raw, spec)
    try:
        value = int(raw)
    except (ValueError, OverflowError) as e:
        raise _fail(raw, spec, str(e))
    return _wrap_integer(value, _INTEGER_BITS[spec.kind])


def _coerce_float(raw: Any, kind: ValueKind, spec: TypeSpec) -> float:
    if kind is not ValueKind.NUMBER:
        raise _fail(raw, spec)
    try:
        return float(raw)
    except OverflowError as e:
        # Integers beyond the float range
        raise _fail(raw, spec, str(e))


def _coerce_string(raw: Any, kind: ValueKind, spec: TypeSpec) -> str:
    if kind is ValueKind.STRING:
        return raw
    raise _fail(raw, spec)


def _coerce_char(raw: Any, kind: ValueKind, spec: TypeSpec) -> str:
    if kind is not ValueKind.STRING:
        raise _fail(raw, spec)
    if len(raw) != 1:
        raise _fail(raw, spec, f"string must be a single character: {raw!r}")
    return raw


def _coerce_list(raw: Any, kind: ValueKind, spec: TypeSpec) -> list:
    if kind not in (ValueKind.SEQUENCE, ValueKind.SET):
        raise _fail(raw, spec)
    element = spec.element or ANY_SPEC
    return [coerce(item, element) for item in raw]


def _coerce_set(raw: Any, kind: ValueKind, spec: TypeSpec) -> set:
    if kind not in (ValueKind.SEQUENCE, ValueKind.SET):
        raise _fail(raw, spec)
    element = spec.element or ANY_SPEC
    try:
        return {coerce(item, element) for item in raw}
    except TypeError as e:
        raise _fail(raw, spec, str(e))


def _coerce_map(raw: Any, kind: ValueKind, spec: TypeSpec) -> dict:
    if kind is not ValueKind.MAPPING:
        raise _fail(raw, spec)
    key_spec = spec.key or ANY_SPEC
    value_spec = spec.value or ANY_SPEC
    result = {}
    for key, value in raw.items():
        coerced_key = coerce(key, key_spec)
        try:
            result[coerced_key] = coerce(value, value_spec)
        except TypeError as e:
            raise _fail(raw, spec, str(e))
    return result


Coercer = Callable[[Any, ValueKind, TypeSpec], Any]

_COERCERS: Dict[ValueType, Coercer] = {
    ValueType.BOOLEAN: _coerce_boolean,
    ValueType.INT: _coerce_integer,
    ValueType.LONG: _coerce_integer,
    ValueType.SHORT: _coerce_integer,
    ValueType.BYTE: _coerce_integer,
    ValueType.DOUBLE: _coerce_float,
    ValueType.FLOAT: _coerce_float,
    ValueType.STRING: _coerce_string,
    ValueType.CHAR: _coerce_char,
    ValueType.LIST: _coerce_list,
    ValueType.SET: _coerce_set,
    ValueType.MAP: _coerce_map,
}


def coerce(raw: Any, spec: TypeSpec) -> Any:
    """Convert a raw deserialized value into the type described by ``spec``.

    Parameters
    ----------
    raw : Any
        Value as returned by a format's ``read``
    spec : TypeSpec
        Declared type

    Returns
    -------
    Any
        Converted value; ``None`` stays ``None``

    Raises
    ------
    CoercionError
        If no rule converts the value to the declared type
    """
    kind = classify(raw)
    if kind is ValueKind.NULL:
        return None
    if spec.kind is ValueType.ANY:
        return raw
    return _COERCERS[spec.kind](raw, kind, spec)
