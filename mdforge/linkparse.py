"""Find and parse the ``{{#...}}`` helpers embedded in chapter text.

Recognised helpers are ``include``, ``rustdoc_include``, ``playground`` (also
spelled ``playpen``) and ``title``.  A helper preceded by a backslash is an
escaped link and is kept literally, minus the backslash.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePath

logger = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"

_USIZE_LIMIT = 1 << 64
_UNSIGNED = re.compile(r"\+?[0-9]+")

_LINK = re.compile(
    r"""
    \\\{\{\#.*\}\}       # escaped link
    |
    \{\{\s*              # opening braces and whitespace
    \#([a-zA-Z0-9_]+)    # link type
    \s+                  # separating whitespace
    ([^}]+)              # target path and space separated properties
    \}\}                 # closing braces
    """,
    re.VERBOSE,
)


class LinkKind(enum.Enum):
    """The kind of helper a link expresses."""

    ESCAPED = "escaped"
    INCLUDE = "include"
    PLAYGROUND = "playground"
    RUSTDOC_INCLUDE = "rustdoc_include"
    TITLE = "title"


@dataclass(frozen=True)
class LineRange:
    """A zero-based, end-exclusive range of lines; ``None`` leaves a side open."""

    start: int | None = None
    end: int | None = None


RangeOrAnchor = LineRange | str


@dataclass(frozen=True)
class Link:
    """A helper found in a text, with its character offsets."""

    start_index: int
    end_index: int
    kind: LinkKind
    link_text: str
    path: str | None = None
    range_or_anchor: RangeOrAnchor | None = None
    properties: tuple[str, ...] = ()
    title: str | None = None

    def relative_path(self, base: str | PurePath) -> Path | None:
        """The directory holding the linked file, or None for links without a file."""
        if self.path is None or self.kind in (LinkKind.ESCAPED, LinkKind.TITLE):
            return None
        return (Path(base) / self.path).parent


def _parse_usize(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value < _USIZE_LIMIT else None


def parse_range_or_anchor(parts: str | None) -> RangeOrAnchor:
    """Parse the ``start:end`` or ``anchor`` suffix of an include target.

    Line numbers are one-based in the text and become zero-based here.
    """
    elements = (parts or "").split(":", 2)
    first = elements[0]

    number = _parse_usize(first)
    if number is not None:
        start: int | None = max(number - 1, 0)
    elif first == "":
        start = None
    else:
        return first

    if len(elements) < 2:
        if start is None:
            return LineRange()
        return LineRange(start, start + 1)

    end = _parse_usize(elements[1])
    if start is not None:
        return LineRange(start, end)
    return LineRange(None, end)


def _split_target(path: str) -> tuple[str, RangeOrAnchor]:
    file_path, _, rest = path.partition(":")
    return file_path, parse_range_or_anchor(rest if ":" in path else None)


def parse_include_path(path: str) -> tuple[LinkKind, str, RangeOrAnchor]:
    """Parse the target of an ``include`` helper."""
    file_path, range_or_anchor = _split_target(path)
    return LinkKind.INCLUDE, file_path, range_or_anchor


def parse_rustdoc_include_path(path: str) -> tuple[LinkKind, str, RangeOrAnchor]:
    """Parse the target of a ``rustdoc_include`` helper."""
    file_path, range_or_anchor = _split_target(path)
    return LinkKind.RUSTDOC_INCLUDE, file_path, range_or_anchor


def _from_match(match: re.Match[str]) -> Link | None:
    typ, rest = match.group(1), match.group(2)
    start, end, text = match.start(), match.end(), match.group(0)

    if typ is not None and rest is not None:
        if typ == "title":
            return Link(start, end, LinkKind.TITLE, text, title=rest)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ == "include":
            kind, path, roa = parse_include_path(file_arg)
            return Link(start, end, kind, text, path=path, range_or_anchor=roa)
        if typ == "rustdoc_include":
            kind, path, roa = parse_rustdoc_include_path(file_arg)
            return Link(start, end, kind, text, path=path, range_or_anchor=roa)
        if typ in ("playground", "playpen"):
            if typ == "playpen":
                logger.warning(
                    "the {{#playpen}} expression has been renamed to {{#playground}}, "
                    "please update your book to use the new name"
                )
            return Link(start, end, LinkKind.PLAYGROUND, text, path=file_arg, properties=props)
        return None

    if text.startswith(ESCAPE_CHAR):
        return Link(start, end, LinkKind.ESCAPED, text)
    return None


def find_links(contents: str) -> Iterator[Link]:
    """Yield every recognised link in ``contents`` in order of appearance."""
    for match in _LINK.finditer(contents):
        link = _from_match(match)
        if link is not None:
            yield link