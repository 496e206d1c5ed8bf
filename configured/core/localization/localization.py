"""
Localized message catalogs backed by config files.

Each language has its own file, e.g. ``lang/en_US.yml``, holding
``key: message`` pairs. Messages are looked up in the selected language,
then in the fallback language, and finally the key itself is returned.
Placeholders such as ``{user}`` are replaced by the arguments passed to
:meth:`Localization.get`, in the order the key's parameters are declared.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Type, Union
import logging

from ..config.formats import ConfigFormat, FormatRegistry, get_config_format
from ..config.option import ConfigOption
from ..config.registry import Config
from .keys import KeyLike, ParameterTable, resolve_key

logger = logging.getLogger(__name__)

PathGenerator = Callable[[str], Union[str, Path]]


class Localization:
    """Localized messages for a language with an optional fallback language.

    Examples
    --------
    >>> class Message(Enum):
    ...     USER_NOT_FOUND = "user_not_found"
    >>> localization = Localization(lambda lang: f"lang/{lang}.yml",
    ...                             language="de_DE", fallback_language="en_US")
    >>> localization.register_keys_for(Message, {Message.USER_NOT_FOUND: ["username"]})  # doctest: +SKIP
    >>> localization.load()  # doctest: +SKIP
    >>> localization.get(Message.USER_NOT_FOUND, "Clickism")  # doctest: +SKIP
    """

    def __init__(self, path_generator: PathGenerator,
                 format: Optional[ConfigFormat] = None,
                 registry: Optional[FormatRegistry] = None,
                 language: Optional[str] = None,
                 fallback_language: Optional[str] = None,
                 version: Optional[int] = None,
                 parameter_format: str = "{%s}",
                 update_with_new_keys: bool = False):
        """Initialize localization.

        Parameters
        ----------
        path_generator : callable
            Returns the file path for a language code
        format : ConfigFormat, optional
            Format of the files; derived from the extension of the
            generated paths if omitted
        registry : FormatRegistry, optional
            Registry used for the extension lookup
        language : str, optional
            Language to use
        fallback_language : str, optional
            Language used for keys missing from the selected language
        version : int, optional
            Version of the localization files
        parameter_format : str
            Placeholder pattern, ``%s`` is replaced by the parameter name
        update_with_new_keys : bool
            Rewrite files with the registered keys on version mismatch.
            Messages for keys that were not registered are dropped, so
            register every key before enabling this.
        """
        if format is None:
            # An empty language code would give a suffix-less dotfile such as ".yml"
            format = get_config_format(path_generator("_"), registry)
        self.path_generator = path_generator
        self.format = format
        self.language = language
        self.fallback_language = fallback_language
        self.version = version
        self.parameter_format = parameter_format
        self.update_with_new_keys = update_with_new_keys
        self.parameters = ParameterTable()

        self._options: Dict[str, ConfigOption] = {}
        self._config: Optional[Config] = None
        self._fallback_config: Optional[Config] = None

    def register_key(self, key: KeyLike) -> "Localization":
        """Register a key so that generated files contain it.

        Keys only need registering when files should be generated or updated
        with them; :meth:`get` works for any key.
        """
        resolved = resolve_key(key)
        if resolved.parameters:
            self.parameters.declare(resolved, *resolved.parameters)
        self._options.setdefault(resolved.key, self._option_for(resolved.key))
        return self

    def register_keys_for(self, enum_cls: Type[Enum],
                          parameters: Optional[Mapping[Enum, Iterable[str]]] = None) -> "Localization":
        """Register every member of an enum, declaring parameter names.

        Parameters
        ----------
        enum_cls : Enum subclass
            Enum whose members are message keys
        parameters : mapping, optional
            Parameter names per member
        """
        for key in self.parameters.declare_enum(enum_cls, parameters):
            self.register_key(key)
        return self

    def load(self) -> "Localization":
        """Load the files of the selected and the fallback language.

        Missing files are generated with the registered keys. Without a
        selected language the fallback language is used; without either,
        nothing is loaded.
        """
        if self.language is None:
            if self.fallback_language is None:
                logger.warning("No language or fallback language set for localization!")
                return self
            logger.warning("No language code specified for localization, using fallback language...")
            self.language = self.fallback_language

        self._config = self._create_language_config(self.language)
        self._load_language(self._config, self.language)

        if self.fallback_language is not None and self.fallback_language != self.language:
            self._fallback_config = self._create_language_config(self.fallback_language)
            self._load_language(self._fallback_config, self.fallback_language)
        else:
            self._fallback_config = None
        return self

    def get(self, key: KeyLike, *params: Any) -> str:
        """Get a localized message with its placeholders replaced.

        Parameters are substituted in the order the key's parameter names are
        declared. Extra parameters are ignored; placeholders without a
        parameter are left in place.

        Parameters
        ----------
        key : LocalizationKey, Enum member or str
            Message key
        *params
            Values for the key's placeholders

        Returns
        -------
        str
            Localized message, or the key text if no language provides one
        """
        resolved = resolve_key(key)
        result = self._localized_string(resolved.key)
        names = resolved.parameters or self.parameters.parameters_for(resolved.key)
        for name, param in zip(names, params):
            result = result.replace(self.parameter_format % name, str(param))
        return result

    def _localized_string(self, key: str) -> str:
        lookup = ConfigOption.of_object(key)
        for config in (self._config, self._fallback_config):
            if config is None:
                continue
            localized = config.get_or_none(lookup)
            if isinstance(localized, str):
                return localized
        return key

    def _load_language(self, config: Config, language: str) -> None:
        if not config.exists():
            logger.warning(f"No localization file found for '{language}'. "
                           f"Generating a localization file with the registered keys instead.")
        if self.update_with_new_keys:
            config.load()
        else:
            config.load_without_updating()

        if self._is_version_mismatch(config):
            logger.warning(f"Version mismatch detected for '{language}'. "
                           f"Please ensure the localization files are up to date")

    def _is_version_mismatch(self, config: Config) -> bool:
        if self.version is None:
            return False
        return config.current_version() != self.version

    def _create_language_config(self, language: str) -> Config:
        config = Config(self.path_generator(language), format=self.format)
        if self.version is not None:
            config.set_version(self.version)
        return config.separate_config_options(False).register_all(self._options.values())

    @staticmethod
    def _option_for(key: str) -> ConfigOption:
        # Untyped, so that a non-string message falls through to the fallback language
        return ConfigOption.of_object(key, key)
