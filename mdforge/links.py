"""Expand the ``{{#...}}`` helpers of a chapter into the text they stand for.

Included files are read relative to the directory of the text that names
them, and helpers inside included text are expanded in turn, down to a
fixed depth so that cyclic includes end.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath

from mdforge.linkparse import LineRange, Link, LinkKind, find_links

logger = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<anchor_id>[\w_-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<anchor_id>[\w_-]+)")


class LinkError(Exception):
    """Raised when the file behind a link cannot be read."""


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _bounds(line_range: LineRange) -> tuple[int, int | None]:
    return (line_range.start or 0), line_range.end


def _in_range(index: int, line_range: LineRange) -> bool:
    start, end = _bounds(line_range)
    return index >= start and (end is None or index < end)


def _take_lines(text: str, line_range: LineRange) -> str:
    start, end = _bounds(line_range)
    lines = _lines(text)
    selected = lines[start:] if end is None else lines[start:max(end, start)]
    return "\n".join(selected)


def _take_anchored_lines(text: str, anchor: str) -> str:
    retained: list[str] = []
    found = False
    for line in _lines(text):
        if found:
            end = _ANCHOR_END.search(line)
            if end is not None:
                if end["anchor_id"] == anchor:
                    break
            elif _ANCHOR_START.search(line) is None:
                retained.append(line)
        else:
            start = _ANCHOR_START.search(line)
            if start is not None and start["anchor_id"] == anchor:
                found = True
    return "\n".join(retained)


def _take_rustdoc_include_lines(text: str, line_range: LineRange) -> str:
    return "\n".join(
        line if _in_range(index, line_range) else f"# {line}"
        for index, line in enumerate(_lines(text))
    )


def _take_rustdoc_include_anchored_lines(text: str, anchor: str) -> str:
    output: list[str] = []
    within = False
    for line in _lines(text):
        if within:
            end = _ANCHOR_END.search(line)
            if end is not None:
                if end["anchor_id"] == anchor:
                    within = False
            elif _ANCHOR_START.search(line) is None:
                output.append(line)
        else:
            start = _ANCHOR_START.search(line)
            if start is not None:
                if start["anchor_id"] == anchor:
                    within = True
            elif _ANCHOR_END.search(line) is None:
                output.append(f"# {line}")
    return "\n".join(output)


def _read(link: Link, base: Path) -> str:
    target = base / (link.path or "")
    try:
        return target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise LinkError(f"Could not read file for link {link.link_text} ({target})") from exc


def render_link(link: Link, base: str | PurePath, chapter_title: str) -> tuple[str, str]:
    """Return the text that replaces ``link`` and the chapter title afterwards."""
    base = Path(base)
    if link.kind is LinkKind.ESCAPED:
        return link.link_text[1:], chapter_title
    if link.kind is LinkKind.TITLE:
        return "", link.title if link.title is not None else chapter_title

    contents = _read(link, base)
    if link.kind is LinkKind.INCLUDE:
        if isinstance(link.range_or_anchor, str):
            return _take_anchored_lines(contents, link.range_or_anchor), chapter_title
        return _take_lines(contents, link.range_or_anchor or LineRange()), chapter_title
    if link.kind is LinkKind.RUSTDOC_INCLUDE:
        if isinstance(link.range_or_anchor, str):
            text = _take_rustdoc_include_anchored_lines(contents, link.range_or_anchor)
        else:
            text = _take_rustdoc_include_lines(contents, link.range_or_anchor or LineRange())
        return text, chapter_title

    ftype = "rust," if link.properties else "rust"
    if not contents.endswith("\n"):
        contents += "\n"
    return f"```{ftype}{','.join(link.properties)}\n{contents}```\n", chapter_title


def replace_all(
    s: str,
    path: str | PurePath,
    source: str | PurePath,
    depth: int,
    chapter_title: str,
) -> tuple[str, str]:
    """Expand every link in ``s``; return the new text and the chapter title.

    A link that cannot be rendered is left in the text as written.
    """
    path = Path(path)
    pieces: list[str] = []
    previous_end = 0

    for link in find_links(s):
        pieces.append(s[previous_end:link.start_index])
        try:
            new_content, chapter_title = render_link(link, path, chapter_title)
        except LinkError as exc:
            logger.error('Error updating "%s", %s', link.link_text, exc)
            cause = exc.__cause__
            while cause is not None:
                logger.warning("Caused By: %s", cause)
                cause = cause.__cause__
            previous_end = link.start_index
            continue

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = link.relative_path(path)
            if rel_path is not None:
                nested, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
                pieces.append(nested)
            else:
                pieces.append(new_content)
        else:
            logger.error("Stack depth exceeded in %s. Check for cyclic includes", source)
        previous_end = link.end_index

    pieces.append(s[previous_end:])
    return "".join(pieces), chapter_title


class LinkPreprocessor:
    """Expands ``include``, ``rustdoc_include``, ``playground`` and ``title`` helpers."""

    name = "links"

    def process_chapter(
        self,
        content: str,
        src_dir: str | PurePath,
        chapter_path: str | PurePath,
        name: str,
    ) -> tuple[str, str]:
        """Expand a chapter's helpers; return its new content and title."""
        chapter_path = PurePath(chapter_path)
        base = Path(src_dir) / chapter_path.parent
        return replace_all(content, base, chapter_path, 0, name)