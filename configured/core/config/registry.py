"""
Config registry: declared options reconciled with a config file.

A :class:`Config` owns a set of registered options and a mapping of current
values. Loading merges the file's contents over the declared defaults,
coercing every value to its option's declared type; saving writes every
registered option back with its description as a comment.

Data errors never propagate out of ``load`` or ``save``: an unreadable file
leaves the in-memory values untouched, a value of the wrong type falls back to
the option's default, and a failed write is logged. Declaration mistakes
(duplicate keys, setting unregistered options) raise immediately.

A config is not thread-safe; callers sharing one between threads must
serialize access themselves.
"""

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
import logging

from ..base.exceptions import (
    CoercionError,
    ConfiguredError,
    DuplicateOptionError,
    UnregisteredOptionError,
)
from .coercion import TypeLike, ValueType
from .formats import ConfigFormat, Entry, FormatRegistry, WriteOptions, get_config_format
from .option import ConfigOption, Listener

logger = logging.getLogger(__name__)

VERSION_KEY = "_version"
VERSION_OPTION = ConfigOption.of(VERSION_KEY, 0, value_type=ValueType.INT)


class Config:
    """A configuration file and the options declared for it.

    Examples
    --------
    >>> config = Config("config.yml").set_version(2)
    >>> enabled = config.option_of("enabled", True, description="Enable the feature")
    >>> names = config.option_of("names", ["a", "b"], str)
    >>> config.load()  # doctest: +SKIP
    >>> config.get(enabled)
    True
    """

    def __init__(self, file: Optional[Union[str, Path]] = None,
                 format: Optional[ConfigFormat] = None,
                 registry: Optional[FormatRegistry] = None):
        """Initialize a config.

        Parameters
        ----------
        file : str or Path, optional
            File to read from and write to
        format : ConfigFormat, optional
            Format of the file; looked up from the file extension if omitted
        registry : FormatRegistry, optional
            Registry used for the extension lookup; the built-in formats if omitted

        Raises
        ------
        UnsupportedFormatError
            If no format is given and none is known for the file extension
        ValueError
            If neither a file nor a format is given
        """
        if format is None:
            if file is None:
                raise ValueError("A format is required when no file is given")
            format = get_config_format(file, registry)

        self.format = format
        self._file: Optional[Path] = Path(file) if file is not None else None
        self._options: Dict[str, ConfigOption] = {}
        self._values: Dict[Any, Any] = {}
        self._version: Optional[int] = None
        self._header: Optional[str] = None
        self._footer: Optional[str] = None
        self._write_options = format.default_write_options()
        self._old_key_generator: Optional[Callable[[str], str]] = None

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(file={self._file}, format={self.format.format_name}, "
                f"options={len(self._options)})")

    @property
    def file(self) -> Optional[Path]:
        return self._file

    @file.setter
    def file(self, file: Optional[Union[str, Path]]) -> None:
        self._file = Path(file) if file is not None else None

    @property
    def options(self) -> Tuple[ConfigOption, ...]:
        """Registered options in registration order."""
        return tuple(self._options.values())

    def exists(self) -> bool:
        """Check whether the config file exists."""
        return self._file is not None and self._file.exists()

    # Registration

    def register(self, option: ConfigOption) -> ConfigOption:
        """Register an option and seed its value with the default.

        Parameters
        ----------
        option : ConfigOption
            Option to register

        Returns
        -------
        ConfigOption
            The registered option

        Raises
        ------
        DuplicateOptionError
            If an option with the same key is already registered
        """
        if option.key in self._options:
            raise DuplicateOptionError(f"Option with key '{option.key}' already exists",
                                       config_file=self._file_name(), parameter=option.key)
        self._options[option.key] = option
        self._values[option.key] = option.default_value
        return option

    def register_all(self, options: Iterable[ConfigOption]) -> "Config":
        """Register several options in order.

        Registration stops at the first duplicate; options registered before
        it stay registered.
        """
        for option in options:
            self.register(option)
        return self

    def option_of(self, key: str, default_value: Any, *element_types: TypeLike,
                  value_type: Optional[ValueType] = None,
                  description: Optional[str] = None,
                  header: Optional[str] = None,
                  footer: Optional[str] = None,
                  hidden: bool = False,
                  on_load: Optional[Listener] = None,
                  old_keys: Iterable[str] = ()) -> ConfigOption:
        """Create and register an option in one step.

        Parameters
        ----------
        key : str
            Key of the option
        default_value : Any
            Default value
        *element_types
            Element type for lists and sets, key and value types for maps
        value_type : ValueType, optional
            Explicit declared type
        description, header, footer : str, optional
            Comments written with the option
        hidden : bool
            Omit the option from the file while it holds its default
        on_load : callable, optional
            Listener called with the resolved value after every load
        old_keys : iterable of str
            Legacy keys migrated to this option on load

        Returns
        -------
        ConfigOption
            The registered option
        """
        option = ConfigOption.of(key, default_value, *element_types, value_type=value_type)
        option = replace(
            option,
            description=description,
            header=header,
            footer=footer,
            hidden=hidden,
            listeners=(on_load,) if on_load is not None else (),
            old_keys=tuple(old_keys),
        )
        return self.register(option)

    # Values

    def get(self, option: ConfigOption) -> Any:
        """Get the value of an option.

        Returns the option's default when no value is held, or when the held
        value does not match the option's declared type (a warning is logged).
        """
        value = self._values.get(option.key)
        if value is None:
            return option.default_value
        if not option.accepts(value):
            logger.warning(f"Invalid value type for option '{option.key}' "
                           f"(expected {option.type_spec.describe()}, got {type(value).__name__}). "
                           f"Using default value instead")
            return option.default_value
        return value

    def get_or_none(self, option: ConfigOption) -> Any:
        """Get the value of an option, or ``None`` if unset or of the wrong type."""
        value = self._values.get(option.key)
        if value is None:
            return None
        if not option.accepts(value):
            logger.warning(f"Invalid value type for option '{option.key}'")
            return None
        return value

    def set(self, option: ConfigOption, value: Any) -> "Config":
        """Set the value of a registered option.

        Parameters
        ----------
        option : ConfigOption
            Option to set
        value : Any
            New value, or ``None`` to fall back to the default. A value that
            does not match the declared type is stored with a warning.

        Returns
        -------
        Config
            Self for method chaining

        Raises
        ------
        UnregisteredOptionError
            If the option was never registered
        """
        if option.key not in self._options:
            raise UnregisteredOptionError(f"Option '{option.key}' is not registered",
                                          config_file=self._file_name(), parameter=option.key)
        if value is None:
            self._values.pop(option.key, None)
            return self
        if not option.accepts(value):
            logger.warning(f"Value of type {type(value).__name__} does not match option '{option.key}' "
                           f"(expected {option.type_spec.describe()}). It is saved as given, "
                           f"but get() returns the default value")
        self._values[option.key] = value
        return self

    def reset(self, option: ConfigOption) -> "Config":
        """Reset an option to its default value."""
        return self.set(option, None)

    # Loading

    def load(self) -> "Config":
        """Load or reload the config file.

        Overwrites unsaved changes. Creates the file if it does not exist and
        rewrites it when its version differs from the declared one.
        """
        self._load(create=True, update=True)
        return self

    def load_without_updating(self) -> "Config":
        """Load the config file, creating it if missing, without version rewrites."""
        self._load(create=True, update=False)
        return self

    def load_if_exists(self) -> "Config":
        """Load the config file only if it exists, rewriting it on version mismatch."""
        self._load(create=False, update=True)
        return self

    def load_if_exists_without_updating(self) -> "Config":
        """Load the config file only if it exists, never writing it."""
        self._load(create=False, update=False)
        return self

    def _load(self, create: bool, update: bool) -> None:
        if self._file is None:
            logger.error("No file specified for config!")
            return

        if not self._file.exists():
            if create:
                self.save()
            # Listeners still see the defaults
            self._notify_listeners()
            return

        try:
            data = self.format.read(self._file)
        except (ConfiguredError, OSError) as e:
            logger.error(f"Failed to load config file: {self._file.absolute()}: {e}")
            return

        self._migrate_old_keys(data)
        self._coerce_all(data)
        self._values = data

        if update and self._is_version_mismatch():
            logger.info(f"Config file '{self._file}' has a different version. Saving current version.")
            self.save()

        self._notify_listeners()

    def _migrate_old_keys(self, data: Dict[Any, Any]) -> None:
        for option in self._options.values():
            if option.key in data:
                continue
            for old_key in self._old_keys_for(option):
                if old_key in data:
                    logger.info(f"Migrating option '{old_key}' to '{option.key}'")
                    data[option.key] = data.pop(old_key)
                    break

    def _old_keys_for(self, option: ConfigOption) -> List[str]:
        old_keys = list(option.old_keys)
        if self._old_key_generator is not None:
            generated = self._old_key_generator(option.key)
            if generated != option.key and generated not in old_keys:
                old_keys.append(generated)
        return old_keys

    def _coerce_all(self, data: Dict[Any, Any]) -> None:
        for option in self._options.values():
            value = data.get(option.key)
            if value is None:
                continue
            try:
                data[option.key] = option.coerce(value)
            except CoercionError as e:
                logger.warning(f"Invalid value type for option '{option.key}'. "
                               f"Using default value instead. Reason: {e}")
                data[option.key] = option.default_value

    def _notify_listeners(self) -> None:
        for option in self._options.values():
            if option.key not in self._values:
                continue
            for listener in option.listeners:
                listener(self.get(option))

    # Saving

    def save(self) -> "Config":
        """Save all registered options, creating the file if needed.

        Options that were never set are written with their default value.
        Hidden options holding their default are left out.
        """
        self._save(only_registered=True)
        return self

    def save_with_unregistered_data(self) -> "Config":
        """Save registered options followed by unregistered values.

        Unregistered values keep the order in which they were read.
        """
        self._save(only_registered=False)
        return self

    def _save(self, only_registered: bool) -> None:
        if self._file is None:
            logger.error("No file specified for config!")
            return

        if VERSION_KEY in self._options:
            self.set(VERSION_OPTION, self._version)

        entries = self._entries_to_save(only_registered)

        try:
            self._file.parent.mkdir(parents=True, exist_ok=True)
            if not self._file.exists():
                logger.info(f"Config file '{self._file}' doesn't exist, creating it")
                self._file.touch()
            self.format.write(self._file, self._header, self._footer, entries, self._write_options)
        except (ConfiguredError, OSError) as e:
            logger.error(f"Failed to save config file: {self._file.absolute()}: {e}")

    def _entries_to_save(self, only_registered: bool) -> List[Entry]:
        entries: List[Entry] = []
        for option in self._options.values():
            value = self._values.get(option.key, option.default_value)
            if option.hidden and value == option.default_value:
                continue
            entries.append((option, value))

        if only_registered:
            return entries

        for key, value in self._values.items():
            if key in self._options:
                continue
            entries.append((ConfigOption.of_object(key, value), value))
        return entries

    # Versioning

    @property
    def version(self) -> Optional[int]:
        """Version declared with :meth:`set_version`."""
        return self._version

    def set_version(self, version: int) -> "Config":
        """Declare the version of the config file layout.

        Registers the reserved ``_version`` option if it is not registered yet.
        """
        self._version = version
        if VERSION_KEY not in self._options:
            self.register(VERSION_OPTION)
        return self

    def current_version(self) -> Optional[int]:
        """Version held in the config, i.e. the one in the last loaded file."""
        return self.get_or_none(VERSION_OPTION)

    def _is_version_mismatch(self) -> bool:
        if self._version is None:
            return False
        return self.get(VERSION_OPTION) != self._version

    def old_key_generator(self, generator: Callable[[str], str]) -> "Config":
        """Derive a legacy key from each option key, e.g. ``lambda k: k.replace('_', '-')``."""
        self._old_key_generator = generator
        return self

    # Layout

    @property
    def header(self) -> Optional[str]:
        return self._header

    def set_header(self, header: str) -> "Config":
        self._header = header.strip()
        return self

    @property
    def footer(self) -> Optional[str]:
        return self._footer

    def set_footer(self, footer: str) -> "Config":
        self._footer = footer.strip()
        return self

    @property
    def write_options(self) -> WriteOptions:
        return self._write_options

    def separate_config_options(self, separate: bool) -> "Config":
        """Set whether options are separated by a blank line."""
        self._write_options = WriteOptions(separate_options=separate,
                                           write_comments=self._write_options.write_comments)
        return self

    def write_comments(self, write_comments: bool) -> "Config":
        """Set whether headers, footers and descriptions are written."""
        self._write_options = WriteOptions(separate_options=self._write_options.separate_options,
                                           write_comments=write_comments)
        return self

    def _file_name(self) -> Optional[str]:
        return str(self._file) if self._file is not None else None
