"""
Localization keys and their parameter names.

Message keys are usually declared as an :class:`~enum.Enum`; the key text of a
member is its lower-cased name. Parameter names are not attached to the enum
itself but declared in a :class:`ParameterTable`, which maps each key to the
ordered names of the placeholders its message uses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union


@dataclass(frozen=True)
class LocalizationKey:
    """Key of a localized message and the names of its parameters.

    Attributes
    ----------
    key : str
        Key of the message in the localization file
    parameters : tuple of str
        Placeholder names, in the order arguments are passed to
        :meth:`Localization.get`
    """

    key: str
    parameters: Tuple[str, ...] = ()

    @classmethod
    def of(cls, key: str, *parameters: str) -> "LocalizationKey":
        return cls(key, tuple(parameters))

    @classmethod
    def from_enum(cls, member: Enum, parameters: Sequence[str] = ()) -> "LocalizationKey":
        """Key for an enum member: its name in lower case."""
        return cls(member.name.lower(), tuple(parameters))


KeyLike = Union[LocalizationKey, Enum, str]


def resolve_key(key: KeyLike) -> LocalizationKey:
    """Convert an enum member, a string or a key into a :class:`LocalizationKey`."""
    if isinstance(key, LocalizationKey):
        return key
    if isinstance(key, Enum):
        return LocalizationKey.from_enum(key)
    if isinstance(key, str):
        return LocalizationKey(key)
    raise TypeError(f"Cannot use {type(key).__name__} as a localization key")


class ParameterTable:
    """Explicit mapping from message key to ordered parameter names."""

    def __init__(self):
        self._parameters: Dict[str, Tuple[str, ...]] = {}

    def declare(self, key: KeyLike, *names: str) -> LocalizationKey:
        """Declare the parameter names of a key.

        Returns
        -------
        LocalizationKey
            The key carrying its parameter names
        """
        resolved = resolve_key(key)
        self._parameters[resolved.key] = tuple(names)
        return LocalizationKey(resolved.key, tuple(names))

    def declare_enum(self, enum_cls: Type[Enum],
                     parameters: Optional[Mapping[Enum, Iterable[str]]] = None) -> List[LocalizationKey]:
        """Declare every member of an enum, with parameters for some of them.

        Parameters
        ----------
        enum_cls : Enum subclass
            Enum whose members are message keys
        parameters : mapping, optional
            Parameter names per member; members not listed have none

        Returns
        -------
        list of LocalizationKey
            Keys of all members, in definition order

        Raises
        ------
        ValueError
            If ``parameters`` names a member of another enum
        """
        parameters = parameters or {}
        for member in parameters:
            if not isinstance(member, enum_cls):
                raise ValueError(f"{member!r} is not a member of {enum_cls.__name__}")
        return [self.declare(member, *parameters.get(member, ())) for member in enum_cls]

    def parameters_for(self, key: KeyLike) -> Tuple[str, ...]:
        return self._parameters.get(resolve_key(key).key, ())

    def __contains__(self, key: KeyLike) -> bool:
        return resolve_key(key).key in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)
