"""The book configuration: an in-memory form of ``book.toml``.

A :class:`Config` holds the ``[book]``, ``[build]`` and ``[rust]`` tables as
typed sections.  Every other table is kept as plain data and reached with
dotted keys such as ``output.html.playground``.
"""

from __future__ import annotations

import copy
import datetime
import enum
import json
import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path, PurePath
from typing import Any, Self

import tomli_w

from mdforge.html import (
    HtmlConfig,
    _boolean,
    _optional,
    _Section,
    _spec,
    _string,
    _string_list,
)

logger = logging.getLogger(__name__)

_ENV_PREFIX = "MDBOOK_"
_LEGACY_KEYS = ("title", "authors", "source", "description", "output.html.destination")


class ConfigError(Exception):
    """Raised when a configuration cannot be loaded or a value cannot be stored."""


class RustEdition(enum.Enum):
    """Rust edition used for code in the book."""

    E2021 = "2021"
    E2018 = "2018"
    E2015 = "2015"


def _edition(value: Any) -> RustEdition:
    return RustEdition(_string(value))


@dataclass
class BookConfig(_Section):
    """Metadata about the book and where its sources live."""

    title: str | None = _spec(_optional(_string))
    authors: list[str] = _spec(_string_list, factory=list)
    description: str | None = _spec(_optional(_string))
    src: str = _spec(_string, default="src")
    multilingual: bool = _spec(_boolean, default=False)
    language: str | None = _spec(_optional(_string), default="en")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class BuildConfig(_Section):
    """Settings of the build procedure."""

    build_dir: str = _spec(_string, default="book")
    create_missing: bool = _spec(_boolean, default=True)
    use_default_preprocessors: bool = _spec(_boolean, default=True)
    extra_watch_dirs: list[str] = _spec(_string_list, factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class RustConfig(_Section):
    """Settings for Rust code, such as the playground edition."""

    edition: RustEdition | None = _spec(_optional(_edition))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {} if self.edition is None else {"edition": self.edition.value}


def _read(value: Any, key: str) -> Any:
    if not isinstance(value, dict):
        return None
    head, dot, tail = key.partition(".")
    if dot:
        child = value.get(head)
        return None if child is None else _read(child, tail)
    return value.get(key)


def _insert(table: dict[str, Any], key: str, value: Any) -> None:
    head, dot, tail = key.partition(".")
    if not dot:
        table[key] = value
        return
    child = table.get(head)
    if not isinstance(child, dict):
        child = {}
        table[head] = child
    _insert(child, tail, value)


def _delete(value: Any, key: str) -> Any:
    if not isinstance(value, dict):
        return None
    head, dot, tail = key.partition(".")
    if dot:
        child = value.get(head)
        return None if child is None else _delete(child, tail)
    return value.pop(key, None)


def _to_value(value: Any) -> Any:
    """Convert ``value`` into plain TOML data, or raise ConfigError."""
    if isinstance(value, (bool, int, float, str, datetime.date, datetime.time)):
        return value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, enum.Enum):
        return _to_value(value.value)
    if isinstance(value, _Section) or (is_dataclass(value) and hasattr(value, "to_dict")):
        return _to_value(value.to_dict())
    if isinstance(value, Mapping):
        table: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(key, PurePath):
                key = str(key)
            if not isinstance(key, str):
                raise ConfigError(f"table keys must be strings, found {key!r}")
            table[key] = _to_value(item)
        return table
    if isinstance(value, (list, tuple)):
        return [_to_value(item) for item in value]
    raise ConfigError(f"Unable to represent the item as a TOML value: {value!r}")


def _updated(section: _Section, key: str, value: Any) -> _Section:
    """Return ``section`` with ``key`` replaced, or unchanged if that is invalid."""
    raw = section.to_dict()
    _insert(raw, key, value)
    try:
        return type(section).from_dict(raw)
    except (TypeError, ValueError):
        return section


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted(item) for item in value]
    return value


def parse_env(key: str) -> str | None:
    """Turn an ``MDBOOK_`` environment variable name into a dotted config key."""
    if not key.startswith(_ENV_PREFIX):
        return None
    return key[len(_ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _parse_env_value(value: str) -> Any:
    try:
        return json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return value


@dataclass
class Config:
    """The whole book configuration."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    rest: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_str(cls, src: str) -> Self:
        """Load a configuration from TOML text."""
        try:
            return cls.from_dict(tomllib.loads(src))
        except (tomllib.TOMLDecodeError, ConfigError) as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc

    @classmethod
    def from_disk(cls, config_file: str | Path) -> Self:
        """Load a configuration from a TOML file."""
        try:
            text = Path(config_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Unable to open the configuration file: {exc}") from exc
        return cls.from_str(text)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a configuration from a parsed table, accepting the legacy layout."""
        if not isinstance(data, Mapping):
            raise ConfigError("A config file should always be a toml table")
        table = copy.deepcopy(dict(data))
        if any(_read(table, key) is not None for key in _LEGACY_KEYS):
            logger.warning("It looks like you are using the legacy book.toml format.")
            logger.warning("Move top level entries like `title`, `authors` and "
                           "`description` under a `[book]` table, and `destination` "
                           "from `[output.html]` to `build-dir` under `[build]`.")
            return cls._from_legacy(table)
        try:
            book = BookConfig.from_dict(table.pop("book")) if "book" in table else BookConfig()
            build = BuildConfig.from_dict(table.pop("build")) if "build" in table else BuildConfig()
            rust = RustConfig.from_dict(table.pop("rust")) if "rust" in table else RustConfig()
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(exc)) from exc
        return cls(book=book, build=build, rust=rust, rest=table)

    @classmethod
    def _from_legacy(cls, table: dict[str, Any]) -> Self:
        cfg = cls()
        moves = (
            ("title", "title", _optional(_string)),
            ("authors", "authors", _string_list),
            ("source", "src", _string),
            ("description", "description", _optional(_string)),
        )
        for key, attr, parse in moves:
            if key in table:
                raw = table.pop(key)
                try:
                    setattr(cfg.book, attr, parse(raw))
                except (TypeError, ValueError):
                    pass
        destination = _delete(table, "output.html.destination")
        if destination is not None:
            try:
                cfg.build.build_dir = _string(destination)
            except TypeError:
                pass
        cfg.rest = table
        return cfg

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as one table, leaving out default sections."""
        table = copy.deepcopy(self.rest)
        table["book"] = self.book.to_dict()
        if self.build != BuildConfig():
            table["build"] = self.build.to_dict()
        if self.rust != RustConfig():
            table["rust"] = self.rust.to_dict()
        return table

    def to_toml(self) -> str:
        """Return the configuration as TOML text with sorted keys."""
        return tomli_w.dumps(_sorted(self.to_dict()))

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply overrides from ``MDBOOK_*`` variables; values are JSON or plain text."""
        import os

        variables = os.environ if environ is None else environ
        logger.debug("Updating the config from environment variables")
        for name, raw in list(variables.items()):
            key = parse_env(name)
            if key is None:
                continue
            logger.debug("%s => %s", key, raw)
            value = _parse_env_value(raw)
            if key in ("book", "build") and isinstance(value, dict):
                for sub_key, item in value.items():
                    self.set(f"{key}.{sub_key}", item)
                return
            self.set(key, value)

    def get(self, key: str) -> Any:
        """Fetch an item of the free-form tables by dotted key, or None."""
        return _read(self.rest, key)

    def set(self, index: str, value: Any) -> None:
        """Store ``value`` under a dotted key, replacing whatever was in the way."""
        value = _to_value(value)
        if index.startswith("book."):
            self.book = _updated(self.book, index[len("book."):], value)
        elif index.startswith("build."):
            self.build = _updated(self.build, index[len("build."):], value)
        else:
            _insert(self.rest, index, value)

    def html_config(self) -> HtmlConfig | None:
        """The ``[output.html]`` settings, or None if absent or invalid."""
        raw = self.get("output.html")
        if raw is None:
            return None
        try:
            return HtmlConfig.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.error("Parsing configuration [output.html]: %s", exc)
            return None

    def get_renderer(self, index: str) -> dict[str, Any] | None:
        """The table of the named renderer, if it is a table."""
        value = self.get(f"output.{index}")
        return value if isinstance(value, dict) else None

    def get_preprocessor(self, index: str) -> dict[str, Any] | None:
        """The table of the named preprocessor, if it is a table."""
        value = self.get(f"preprocessor.{index}")
        return value if isinstance(value, dict) else None