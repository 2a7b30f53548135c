"""Settings for the HTML renderer, read from the ``[output.html]`` table."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

_Parser = Callable[[Any], Any]


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, found {value!r}")
    return value


def _unsigned(bits: int) -> _Parser:
    limit = 1 << bits

    def parse(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected an integer, found {value!r}")
        if not 0 <= value < limit:
            raise ValueError(f"integer {value} is out of range for u{bits}")
        return value

    return parse


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, found {value!r}")
    return value


def _optional(parse: _Parser) -> _Parser:
    def parse_optional(value: Any) -> Any:
        return None if value is None else parse(value)

    return parse_optional


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError(f"expected an array, found {value!r}")
    return [_string(item) for item in value]


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a table, found {value!r}")
    return {_string(key): _string(item) for key, item in value.items()}


def _section(cls: type[_Section]) -> _Parser:
    return cls.from_dict


def _spec(parse: _Parser, *, default: Any = None, factory: Callable[[], Any] | None = None,
          aliases: tuple[str, ...] = ()) -> Any:
    metadata = {"parse": parse, "aliases": aliases}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _key(name: str) -> str:
    return name.replace("_", "-")


def _dump(value: Any) -> Any:
    if isinstance(value, _Section):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _dump(item) for key, item in value.items()}
    return value


class _Section:
    """Shared table conversion: kebab-case keys, defaults for missing keys."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build the section from a table, ignoring unknown keys."""
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a table, found {data!r}")
        values: dict[str, Any] = {}
        for spec in dataclasses.fields(cls):  # type: ignore[arg-type]
            names = (_key(spec.name), *spec.metadata["aliases"])
            present = [name for name in names if name in data]
            if len(present) > 1:
                raise ValueError(f"duplicate field `{names[0]}`")
            if not present:
                continue
            key = present[0]
            try:
                values[spec.name] = spec.metadata["parse"](data[key])
            except (TypeError, ValueError) as exc:
                raise type(exc)(f"{key}: {exc}") from exc
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Return the section as a table; unset optional values are left out."""
        table: dict[str, Any] = {}
        for spec in dataclasses.fields(self):  # type: ignore[arg-type]
            value = getattr(self, spec.name)
            if value is not None:
                table[_key(spec.name)] = _dump(value)
        return table


@dataclass
class Fold(_Section):
    """How chapters in the sidebar are folded."""

    enable: bool = _spec(_boolean, default=False)
    level: int = _spec(_unsigned(8), default=0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class Playground(_Section):
    """How code snippets are handled by the playground."""

    editable: bool = _spec(_boolean, default=False)
    copyable: bool = _spec(_boolean, default=True)
    copy_js: bool = _spec(_boolean, default=True)
    line_numbers: bool = _spec(_boolean, default=False)
    runnable: bool = _spec(_boolean, default=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class Code(_Section):
    """How code blocks are rendered."""

    hidelines: dict[str, str] = _spec(_string_map, factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class Print(_Section):
    """Print icon, print page and page breaks."""

    enable: bool = _spec(_boolean, default=True)
    page_break: bool = _spec(_boolean, default=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class Search(_Section):
    """Settings of the search feature."""

    enable: bool = _spec(_boolean, default=True)
    limit_results: int = _spec(_unsigned(32), default=30)
    teaser_word_count: int = _spec(_unsigned(32), default=30)
    use_boolean_and: bool = _spec(_boolean, default=False)
    boost_title: int = _spec(_unsigned(8), default=2)
    boost_hierarchy: int = _spec(_unsigned(8), default=1)
    boost_paragraph: int = _spec(_unsigned(8), default=1)
    expand: bool = _spec(_boolean, default=True)
    heading_split_level: int = _spec(_unsigned(8), default=3)
    copy_js: bool = _spec(_boolean, default=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()


@dataclass
class HtmlConfig(_Section):
    """Settings of the HTML renderer."""

    theme: str | None = _spec(_optional(_string))
    default_theme: str | None = _spec(_optional(_string))
    preferred_dark_theme: str | None = _spec(_optional(_string))
    curly_quotes: bool = _spec(_boolean, default=False)
    mathjax_support: bool = _spec(_boolean, default=False)
    copy_fonts: bool = _spec(_boolean, default=True)
    google_analytics: str | None = _spec(_optional(_string))
    additional_css: list[str] = _spec(_string_list, factory=list)
    additional_js: list[str] = _spec(_string_list, factory=list)
    fold: Fold = _spec(_section(Fold), factory=Fold)
    playground: Playground = _spec(_section(Playground), factory=Playground,
                                   aliases=("playpen",))
    code: Code = _spec(_section(Code), factory=Code)
    print: Print = _spec(_section(Print), factory=Print)
    no_section_label: bool = _spec(_boolean, default=False)
    search: Search | None = _spec(_optional(_section(Search)))
    git_repository_url: str | None = _spec(_optional(_string))
    git_repository_icon: str | None = _spec(_optional(_string))
    input_404: str | None = _spec(_optional(_string))
    site_url: str | None = _spec(_optional(_string))
    cname: str | None = _spec(_optional(_string))
    edit_url_template: str | None = _spec(_optional(_string))
    live_reload_endpoint: str | None = _spec(_optional(_string))
    redirect: dict[str, str] = _spec(_string_map, factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()

    def theme_dir(self, root: str | Path) -> Path:
        """The theme directory under ``root``, ``theme`` when none is set."""
        return Path(root) / (self.theme if self.theme is not None else "theme")