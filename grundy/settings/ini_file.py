"""INI document wrapper shared by all Grundy settings files.

Settings are case-sensitive, allow key-only (boolean) lines and may hold
top-level keys that sit before any section header.
"""

import io
import threading
from abc import ABC, abstractmethod
from configparser import Error as ConfigParserError
from configparser import RawConfigParser
from typing import Dict, List, Optional, TextIO

from grundy.errors import ConfigLoadFailed

# Hidden section that holds keys written before the first [section]
TOP_LEVEL = "__grundy_top_level__"
_DEFAULT_SECTION = "__grundy_defaults__"


def _new_parser() -> RawConfigParser:
    parser = RawConfigParser(
        allow_no_value=True,
        delimiters=('=',),
        strict=False,
        interpolation=None,
        default_section=_DEFAULT_SECTION,
    )
    parser.optionxform = str  # Case-sensitive keys
    return parser


class IniDocument:
    """A parsed INI file. Section None refers to the top-level keys."""

    def __init__(self):
        self._lock = threading.RLock()
        self._parser = _new_parser()

    @classmethod
    def from_string(cls, text: str, source: str = "<string>") -> "IniDocument":
        doc = cls()
        parser = _new_parser()
        try:
            parser.read_string(f"[{TOP_LEVEL}]\n" + text, source=source)
        except ConfigParserError as e:
            raise ConfigLoadFailed(f"failed to parse '{source}' - {e}") from e
        doc._parser = parser
        return doc

    @classmethod
    def from_file(cls, file_path: str) -> "IniDocument":
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigLoadFailed(f"failed to read '{file_path}' - {e}") from e
        return cls.from_string(text, source=file_path)

    @staticmethod
    def _section(section: Optional[str]) -> str:
        return TOP_LEVEL if section is None else section

    def sections(self) -> List[str]:
        with self._lock:
            return [s for s in self._parser.sections() if s != TOP_LEVEL]

    def has_section(self, section: Optional[str]) -> bool:
        with self._lock:
            return self._parser.has_section(self._section(section))

    def add_section(self, section: Optional[str]) -> None:
        with self._lock:
            name = self._section(section)
            if not self._parser.has_section(name):
                self._parser.add_section(name)

    def delete_section(self, section: Optional[str]) -> None:
        with self._lock:
            self._parser.remove_section(self._section(section))

    def keys(self, section: Optional[str]) -> List[str]:
        with self._lock:
            name = self._section(section)
            if not self._parser.has_section(name):
                return []
            return list(self._parser.options(name))

    def items(self, section: Optional[str]) -> Dict[str, Optional[str]]:
        with self._lock:
            name = self._section(section)
            if not self._parser.has_section(name):
                return {}
            return {k: self._parser.get(name, k) for k in self._parser.options(name)}

    def has_key(self, section: Optional[str], key: str) -> bool:
        with self._lock:
            return self._parser.has_option(self._section(section), key)

    def get(self, section: Optional[str], key: str, default: str = "") -> str:
        """Value of a key; key-only lines read as "true"."""
        with self._lock:
            name = self._section(section)
            if not self._parser.has_option(name, key):
                return default
            value = self._parser.get(name, key)
            return "true" if value is None else value

    def set(self, section: Optional[str], key: str, value: Optional[str]) -> None:
        """Add or update a key. A None value writes a key-only line."""
        with self._lock:
            name = self._section(section)
            if not self._parser.has_section(name):
                self._parser.add_section(name)
            self._parser.set(name, key, value)

    def delete_key(self, section: Optional[str], key: str) -> None:
        with self._lock:
            name = self._section(section)
            if self._parser.has_section(name):
                self._parser.remove_option(name, key)

    def clear(self) -> None:
        with self._lock:
            self._parser = _new_parser()

    def write(self, f: TextIO, header_comment: Optional[str] = None) -> None:
        with self._lock:
            if header_comment:
                f.write(f"# {header_comment}\n")

            top = self.items(None)
            for key, value in top.items():
                f.write(key if value is None else f"{key} = {value}")
                f.write("\n")

            sections = self.sections()
            if top and sections:
                f.write("\n")

            for section in sections:
                f.write(f"[{section}]\n")
                for key, value in self.items(section).items():
                    f.write(key if value is None else f"{key} = {value}")
                    f.write("\n")
                f.write("\n")

    def dumps(self, header_comment: Optional[str] = None) -> str:
        buffer = io.StringIO()
        self.write(buffer, header_comment)
        return buffer.getvalue()


class SaveableSettings(ABC):
    """A settings document that can be reloaded from and saved to disk"""

    def __init__(self, config: Optional[IniDocument] = None):
        self.config = config if config is not None else IniDocument()

    @abstractmethod
    def filename(self, additional_suffix: str = "") -> str:
        """Basename of this document, e.g. app-example.grundy.ini"""

    @abstractmethod
    def reset_to_defaults(self) -> None:
        """Replace the document's contents with defaults"""

    @abstractmethod
    def example(self) -> "SaveableSettings":
        """Return a fully populated example of this document"""

    def reload(self, file_path: str) -> None:
        """Replace the current contents with the file's.

        The previous contents are kept if the file cannot be loaded.

        Raises:
            ConfigLoadFailed: The file could not be read or parsed
        """
        self.config = IniDocument.from_file(file_path)

    def save(self, f: TextIO) -> None:
        self.config.write(f)

    def dumps(self) -> str:
        buffer = io.StringIO()
        self.save(buffer)
        return buffer.getvalue()


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "t", "true", "yes", "y", "on"):
        return True
    if lowered in ("0", "f", "false", "no", "n", "off"):
        return False
    return default


def split_comma_separated(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
