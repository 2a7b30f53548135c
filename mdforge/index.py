"""Turn ``README.md`` chapters into ``index.md``, the usual index page."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath

logger = logging.getLogger(__name__)

_README = re.compile(r"^readme$", re.IGNORECASE)


def is_readme_file(path: str | PurePath) -> bool:
    """Whether the file stem of ``path`` is ``readme`` in any letter case."""
    return _README.match(PurePath(path).stem) is not None


def _warn_readme_name_conflict(readme_path: PurePath, index_path: Path) -> None:
    file_name = readme_path.name
    parent_dir = index_path.parent
    logger.warning(
        'It seems that there are both %r and index.md under "%s".', file_name, parent_dir
    )
    logger.warning("mdbook converts %r into index.html by default. It may cause", file_name)
    logger.warning("unexpected behavior if putting both files under the same directory.")
    logger.warning("To solve the warning, try to rearrange the book structure or disable")
    logger.warning('"index" preprocessor to stop the conversion.')


class IndexPreprocessor:
    """Renames README chapters to ``index.md`` so they render as ``index.html``."""

    name = "index"

    def convert_path(self, source_dir: str | Path, path: str | PurePath) -> PurePath:
        """Return the chapter path to use, warning if an ``index.md`` already exists."""
        path = PurePath(path)
        if not is_readme_file(path):
            return path
        renamed = path.with_name("index.md")
        index_md = Path(source_dir) / renamed
        if index_md.exists():
            _warn_readme_name_conflict(path, index_md)
        return renamed