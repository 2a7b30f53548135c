"""Preprocessors: steps that transform a book between loading and rendering.

A preprocessor receives a :class:`PreprocessorContext` and the book in its
JSON form, and returns the updated book.  :class:`CmdPreprocessor` hands
that work to an external program over standard input and output.
"""

from __future__ import annotations

import io
import json
import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Self

from mdforge.config import Config, ConfigError

logger = logging.getLogger(__name__)

MDFORGE_VERSION = "0.1.0"


class PreprocessorError(Exception):
    """Raised when a preprocessor cannot be started, fails, or returns bad data."""


@dataclass
class PreprocessorContext:
    """Information handed to a preprocessor alongside the book."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = MDFORGE_VERSION
    chapter_titles: dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self) -> dict[str, Any]:
        """Return the context as JSON-ready data; chapter titles are not included."""
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a context from the data produced by :meth:`to_dict`."""
        if not isinstance(data, Mapping):
            raise PreprocessorError(f"expected an object for the context, found {data!r}")
        try:
            root = data["root"]
            config = data["config"]
            renderer = data["renderer"]
            version = data["mdbook_version"]
        except KeyError as exc:
            raise PreprocessorError(f"missing field {exc.args[0]!r} in the context") from exc
        for name, value in (("root", root), ("renderer", renderer), ("mdbook_version", version)):
            if not isinstance(value, str):
                raise PreprocessorError(f"{name}: expected a string, found {value!r}")
        try:
            parsed = Config.from_dict(config)
        except ConfigError as exc:
            raise PreprocessorError(f"config: {exc}") from exc
        return cls(root=Path(root), config=parsed, renderer=renderer, mdbook_version=version)


class Preprocessor(ABC):
    """A step run on the book after it is loaded and before it is rendered."""

    name: str

    @abstractmethod
    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Return the book after processing it."""

    def supports_renderer(self, renderer: str) -> bool:
        """Whether this preprocessor should run for ``renderer``; always true here."""
        return True


@dataclass
class CmdPreprocessor(Preprocessor):
    """A preprocessor that runs an external command.

    ``$cmd supports $renderer`` exiting with status 0 means the renderer is
    supported.  For :meth:`run`, ``[context, book]`` is written to the
    command's standard input as JSON and the processed book is read back as
    JSON from its standard output.
    """

    name: str
    cmd: str

    @staticmethod
    def parse_input(reader: IO[str]) -> tuple[PreprocessorContext, Any]:
        """Read the ``[context, book]`` pair that is written to a preprocessor."""
        try:
            data = json.load(reader)
        except (ValueError, UnicodeDecodeError) as exc:
            raise PreprocessorError(f"Unable to parse the input: {exc}") from exc
        if not isinstance(data, list) or len(data) != 2:
            raise PreprocessorError("Unable to parse the input: expected a [context, book] pair")
        ctx, book = data
        return PreprocessorContext.from_dict(ctx), book

    def write_input(self, writer: IO[str], book: Any, ctx: PreprocessorContext) -> None:
        """Write ``[context, book]`` as JSON to ``writer``."""
        json.dump([ctx.to_dict(), book], writer, default=str)

    def command(self) -> list[str]:
        """Split the command string into program and arguments."""
        try:
            words = shlex.split(self.cmd)
        except ValueError as exc:
            raise PreprocessorError(f"Invalid command string: {exc}") from exc
        if not words:
            raise PreprocessorError("Command string was empty")
        return words

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Send the book to the command and return the book it prints back."""
        args = self.command()
        buffer = io.StringIO()
        self.write_input(buffer, book, ctx)
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
            )
        except OSError as exc:
            raise PreprocessorError(
                f'Unable to start the "{self.name}" preprocessor. Is it installed?'
            ) from exc

        try:
            stdout, _ = process.communicate(buffer.getvalue())
        except BrokenPipeError as exc:
            logger.warning("Error writing the RenderContext to the backend, %s", exc)
            stdout = process.stdout.read() if process.stdout else ""
            process.wait()

        logger.debug("%s exited with status %s", self.cmd, process.returncode)
        if process.returncode != 0:
            raise PreprocessorError(
                f'The "{self.name}" preprocessor exited unsuccessfully '
                f"with exit status: {process.returncode}"
            )
        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise PreprocessorError(
                f'Unable to parse the preprocessed book from "{self.name}" processor'
            ) from exc

    def supports_renderer(self, renderer: str) -> bool:
        """Ask the command whether it supports ``renderer``."""
        logger.debug('Checking if the "%s" preprocessor supports "%s"', self.name, renderer)
        try:
            args = self.command()
        except PreprocessorError as exc:
            logger.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self.name, exc
            )
            return False
        try:
            completed = subprocess.run([*args, "supports", renderer], stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            logger.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?', self.name
            )
            logger.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return completed.returncode == 0