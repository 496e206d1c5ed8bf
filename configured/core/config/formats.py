"""
Config file formats.

This module provides the formats a :class:`~configured.core.config.registry.Config`
reads and writes: YAML, JSON, JSON with comments and TOML. Every format reads
a file into an insertion-ordered ``dict`` and writes an ordered list of
``(option, value)`` entries, emitting option descriptions, headers and footers
as native comments where the format supports them.

Formats are looked up by file extension through a :class:`FormatRegistry`.
There is no global registry: :meth:`FormatRegistry.with_defaults` builds a
fresh one holding the built-in formats, which an application may extend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import json
import logging
import re

import toml
import yaml
from toml.encoder import TomlEncoder

from ..base.exceptions import FormatParseError, FormatWriteError, UnsupportedFormatError
from .option import ConfigOption

Entry = Tuple[ConfigOption, Any]


@dataclass(frozen=True)
class WriteOptions:
    """Options controlling how a format lays out a file.

    Attributes
    ----------
    separate_options : bool
        Insert a blank line between options
    write_comments : bool
        Write headers, footers and descriptions as comments
    """

    separate_options: bool = True
    write_comments: bool = True


class ConfigFormat(ABC):
    """Abstract base class for config file formats.

    This class defines the interface that all formats must implement,
    ensuring consistent behavior across different file syntaxes.
    """

    @abstractmethod
    def read(self, path: Union[str, Path]) -> Dict[str, Any]:
        """Read a config file.

        Parameters
        ----------
        path : str or Path
            Path to the config file

        Returns
        -------
        dict
            Raw values, in file order

        Raises
        ------
        FormatParseError
            If the file cannot be read or is malformed
        """
        pass

    @abstractmethod
    def write(self, path: Union[str, Path], header: Optional[str], footer: Optional[str],
              entries: Sequence[Entry], options: WriteOptions) -> None:
        """Write a config file.

        Parameters
        ----------
        path : str or Path
            Output path
        header : str, optional
            File header comment
        footer : str, optional
            File footer comment
        entries : sequence of (ConfigOption, value)
            Options to write, in order
        options : WriteOptions
            Layout options

        Raises
        ------
        FormatWriteError
            If the file cannot be written
        """
        pass

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """List of supported file extensions (without the dot)."""
        pass

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Human-readable format name."""
        pass

    @property
    def supports_comments(self) -> bool:
        return True

    def default_write_options(self) -> WriteOptions:
        """Layout used by a config until it is changed explicitly."""
        return WriteOptions()

    def preprocess_data(self, value: Any) -> Any:
        """Convert a value into plain types the serializer understands.

        Sets become lists (sorted when their elements are comparable),
        tuples become lists and paths become strings.
        """
        if isinstance(value, Path):
            return str(value)
        if isinstance(value, dict):
            return {self.preprocess_data(k): self.preprocess_data(v) for k, v in value.items()}
        if isinstance(value, (set, frozenset)):
            try:
                value = sorted(value)
            except TypeError:
                value = list(value)
        if isinstance(value, (list, tuple)):
            return [self.preprocess_data(item) for item in value]
        return value


class BaseFormat(ConfigFormat):
    """Base class for formats that lay out the file text by hand.

    Subclasses render single key/value pairs and comments; this class
    assembles them with headers, footers and separators.
    """

    @abstractmethod
    def format_comment(self, comment: str) -> str:
        """Format a (possibly multi-line) comment without trailing newline."""
        pass

    @abstractmethod
    def format_key_value(self, key: str, value: Any, has_next: bool) -> str:
        """Format one entry, including its trailing newline."""
        pass

    def format_file_header(self) -> str:
        """Text opening the file, e.g. ``{`` for JSON."""
        return ""

    def format_file_footer(self) -> str:
        """Text closing the file, e.g. ``}`` for JSON."""
        return ""

    def render(self, header: Optional[str], footer: Optional[str],
               entries: Sequence[Entry], options: WriteOptions) -> str:
        """Render the complete file content.

        Returns
        -------
        str
            File content

        Raises
        ------
        FormatWriteError
            If a value cannot be serialized
        """
        write_comments = options.write_comments and self.supports_comments
        parts = [self.format_file_header()]
        parts.append(self._render_header(header, write_comments))

        for index, (option, value) in enumerate(entries):
            has_next = index < len(entries) - 1
            parts.append(self._render_header(option.header, write_comments))
            parts.append(self._render_description(option.description, write_comments))
            try:
                parts.append(self.format_key_value(option.key, self.preprocess_data(value), has_next))
            except (TypeError, ValueError, yaml.YAMLError) as e:
                raise FormatWriteError(f"Cannot serialize option '{option.key}' as {self.format_name}",
                                       format_name=self.format_name, cause=e)
            parts.append(self._render_footer(option.footer, write_comments))
            if has_next and options.separate_options:
                parts.append("\n")

        parts.append(self._render_footer(footer, write_comments))
        parts.append(self.format_file_footer())
        return "".join(parts)

    def write(self, path: Union[str, Path], header: Optional[str], footer: Optional[str],
              entries: Sequence[Entry], options: WriteOptions) -> None:
        path = Path(path)
        content = self.render(header, footer, entries, options)

        try:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)

            logging.debug(f"Successfully saved {self.format_name} config to {path}")

        except PermissionError as e:
            raise FormatWriteError(f"Permission denied writing to {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)
        except OSError as e:
            raise FormatWriteError(f"Failed to save {self.format_name} config to {path}",
                                   config_file=str(path), format_name=self.format_name, cause=e)

    def _render_header(self, header: Optional[str], write_comments: bool) -> str:
        if not write_comments or header is None:
            return ""
        return self.format_comment(header) + "\n\n"

    def _render_description(self, description: Optional[str], write_comments: bool) -> str:
        if not write_comments or description is None:
            return ""
        return self.format_comment(description) + "\n"

    def _render_footer(self, footer: Optional[str], write_comments: bool) -> str:
        if not write_comments or footer is None:
            return ""
        return "\n" + self.format_comment(footer) + "\n"

    def _read_text(self, path: Path) -> str:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError as e:
            raise FormatParseError(f"Configuration file not found: {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)
        except PermissionError as e:
            raise FormatParseError(f"Permission denied reading {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)
        except (OSError, UnicodeDecodeError) as e:
            raise FormatParseError(f"Failed to read {self.format_name} config from {path}",
                                   config_file=str(path), format_name=self.format_name, cause=e)

    def _ensure_mapping(self, data: Any, path: Path) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise FormatParseError(f"{self.format_name} file must contain a mapping, "
                                   f"got {type(data).__name__}",
                                   config_file=str(path), format_name=self.format_name)
        return data


class YAMLFormat(BaseFormat):
    """YAML format.

    Values are serialized in block style with PyYAML's safe dumper, one
    top-level key at a time so that comments can be interleaved.
    """

    @property
    def supported_extensions(self) -> List[str]:
        return ['yml', 'yaml']

    @property
    def format_name(self) -> str:
        return "YAML"

    def read(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        text = self._read_text(path)

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise FormatParseError(f"Invalid YAML in {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)

        # Handle empty files
        if data is None:
            data = {}

        logging.debug(f"Successfully loaded YAML config from {path}")
        return self._ensure_mapping(data, path)

    def format_comment(self, comment: str) -> str:
        return "# " + comment.replace("\n", "\n# ")

    def format_key_value(self, key: str, value: Any, has_next: bool) -> str:
        return yaml.safe_dump({key: value}, default_flow_style=False, sort_keys=False,
                              allow_unicode=True, width=float("inf"))


class JSONFormat(BaseFormat):
    """JSON format, optionally with comments (JSONC).

    Plain JSON is written compact and without comments by default, since
    standard JSON has no comment syntax. JSONC accepts ``//`` and ``/* */``
    comments when reading and writes descriptions as ``//`` comments.
    """

    def __init__(self, allow_comments: bool = False):
        """Initialize JSON format.

        Parameters
        ----------
        allow_comments : bool
            Read and write comments (JSONC)
        """
        self.allow_comments = allow_comments

    @classmethod
    def json(cls) -> "JSONFormat":
        return cls(allow_comments=False)

    @classmethod
    def jsonc(cls) -> "JSONFormat":
        return cls(allow_comments=True)

    @property
    def supported_extensions(self) -> List[str]:
        return ['jsonc'] if self.allow_comments else ['json']

    @property
    def format_name(self) -> str:
        return "JSONC" if self.allow_comments else "JSON"

    @property
    def supports_comments(self) -> bool:
        return self.allow_comments

    def default_write_options(self) -> WriteOptions:
        if self.allow_comments:
            return WriteOptions()
        return WriteOptions(separate_options=False, write_comments=False)

    def read(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        text = self._read_text(path)

        try:
            if self.allow_comments:
                text = strip_json_comments(text)
            data = json.loads(text)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError, as are unterminated comments
            raise FormatParseError(f"Invalid {self.format_name} in {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)

        logging.debug(f"Successfully loaded {self.format_name} config from {path}")
        return self._ensure_mapping(data, path)

    def format_comment(self, comment: str) -> str:
        return "  // " + comment.replace("\n", "\n  // ")

    def format_key_value(self, key: str, value: Any, has_next: bool) -> str:
        string = json.dumps(value, indent=2, ensure_ascii=False).replace("\n", "\n  ")
        line = f"  {json.dumps(str(key), ensure_ascii=False)}: {string}"
        if has_next:
            line += ","
        return line + "\n"

    def format_file_header(self) -> str:
        return "{\n"

    def format_file_footer(self) -> str:
        return "}"


def strip_json_comments(text: str) -> str:
    """Remove ``//`` line comments and ``/* */`` block comments from JSON text.

    Comment markers inside string literals are left untouched.

    Raises
    ------
    ValueError
        If a block comment is not terminated
    """
    result = []
    index = 0
    length = len(text)
    in_string = False

    while index < length:
        char = text[index]
        if in_string:
            result.append(char)
            if char == "\\" and index + 1 < length:
                result.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
        elif char == '"':
            in_string = True
            result.append(char)
            index += 1
        elif text.startswith("//", index):
            end = text.find("\n", index)
            index = length if end == -1 else end
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            if end == -1:
                raise ValueError(f"Unterminated block comment at position {index}")
            index = end + 2
        else:
            result.append(char)
            index += 1

    return "".join(result)


_BARE_TOML_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


class TOMLFormat(BaseFormat):
    """TOML format.

    Every option is written as a top-level ``key = value`` line; maps are
    written as inline tables so that later options are not swallowed by a
    table section. TOML has no null, so ``None`` values are skipped.
    """

    def __init__(self):
        """Initialize TOML format."""
        self._encoder = TomlEncoder()

    @property
    def supported_extensions(self) -> List[str]:
        return ['toml']

    @property
    def format_name(self) -> str:
        return "TOML"

    def read(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        text = self._read_text(path)

        try:
            data = toml.loads(text)
        except toml.TomlDecodeError as e:
            raise FormatParseError(f"Invalid TOML in {path}", config_file=str(path),
                                   format_name=self.format_name, cause=e)

        logging.debug(f"Successfully loaded TOML config from {path}")
        return self._ensure_mapping(data, path)

    def render(self, header: Optional[str], footer: Optional[str],
               entries: Sequence[Entry], options: WriteOptions) -> str:
        present = [(option, value) for option, value in entries if value is not None]
        if len(present) != len(entries):
            logging.debug("Skipping null values, TOML has no null type")
        return super().render(header, footer, present, options)

    def format_comment(self, comment: str) -> str:
        return "# " + comment.replace("\n", "\n# ")

    def format_key_value(self, key: str, value: Any, has_next: bool) -> str:
        return f"{self._format_key(key)} = {self._format_value(value)}\n"

    def _format_key(self, key: Any) -> str:
        key = str(key)
        if _BARE_TOML_KEY.match(key):
            return key
        return json.dumps(key, ensure_ascii=False)

    def _format_value(self, value: Any) -> str:
        if value is None:
            raise ValueError("TOML cannot represent null values")
        if isinstance(value, dict):
            if not value:
                return "{}"
            items = ", ".join(f"{self._format_key(k)} = {self._format_value(v)}"
                              for k, v in value.items())
            return "{ " + items + " }"
        if isinstance(value, list):
            return "[" + ", ".join(self._format_value(item) for item in value) + "]"
        return str(self._encoder.dump_value(value))


FormatFactory = Callable[[], ConfigFormat]


class FormatRegistry:
    """Mapping from file extension to a format factory.

    Extensions are stored lower-case and without the leading dot.
    """

    def __init__(self, factories: Optional[Dict[str, FormatFactory]] = None):
        self._factories: Dict[str, FormatFactory] = {}
        for extension, factory in (factories or {}).items():
            self.register(extension, factory)

    @classmethod
    def with_defaults(cls) -> "FormatRegistry":
        """Create a registry holding the built-in formats."""
        return cls({
            'yml': YAMLFormat,
            'yaml': YAMLFormat,
            'json': JSONFormat.json,
            'jsonc': JSONFormat.jsonc,
            'toml': TOMLFormat,
        })

    def register(self, extension: str, factory: FormatFactory) -> None:
        """Register a format factory for a file extension.

        Parameters
        ----------
        extension : str
            File extension, with or without the leading dot
        factory : callable
            Zero-argument callable returning a new format instance
        """
        extension = extension.lower().lstrip('.')
        self._factories[extension] = factory
        logging.debug(f"Registered config format for .{extension}")

    def extensions(self) -> List[str]:
        return list(self._factories)

    def create(self, file_path: Union[str, Path]) -> ConfigFormat:
        """Create the format for a file path based on its extension.

        Raises
        ------
        UnsupportedFormatError
            If the path has no extension or no format is registered for it
        """
        suffix = Path(file_path).suffix.lower().lstrip('.')
        if not suffix:
            raise UnsupportedFormatError(f"Path must have an extension: {file_path}",
                                         config_file=str(file_path))
        if suffix not in self._factories:
            available = self.extensions()
            raise UnsupportedFormatError(f"Unsupported configuration file format: .{suffix}. "
                                         f"Available: {available}", config_file=str(file_path))
        return self._factories[suffix]()


def get_config_format(file_path: Union[str, Path],
                      registry: Optional[FormatRegistry] = None) -> ConfigFormat:
    """Get the appropriate format for a file extension.

    Parameters
    ----------
    file_path : str or Path
        Path to configuration file
    registry : FormatRegistry, optional
        Registry to look the extension up in; the built-in formats if omitted

    Returns
    -------
    ConfigFormat
        New format instance for the file

    Raises
    ------
    UnsupportedFormatError
        If the file format is not supported
    """
    if registry is None:
        registry = FormatRegistry.with_defaults()
    return registry.create(file_path)


def get_format_info() -> Dict[str, Dict[str, Any]]:
    """Get information about the built-in formats.

    Returns
    -------
    dict
        Information about each format
    """
    return {
        'yaml': {
            'extensions': ['.yml', '.yaml'],
            'comments': True,
            'description': 'YAML Ain\'t Markup Language - human-readable',
            'dependency': 'PyYAML (pip install PyYAML)',
        },
        'json': {
            'extensions': ['.json'],
            'comments': False,
            'description': 'JavaScript Object Notation - compact, no comments',
            'dependency': 'Built-in (json module)',
        },
        'jsonc': {
            'extensions': ['.jsonc'],
            'comments': True,
            'description': 'JSON with // and /* */ comments',
            'dependency': 'Built-in (json module)',
        },
        'toml': {
            'extensions': ['.toml'],
            'comments': True,
            'description': 'Tom\'s Obvious, Minimal Language - simple and readable',
            'dependency': 'toml (pip install toml)',
        },
    }
