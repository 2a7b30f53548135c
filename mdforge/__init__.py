"""Book configuration handling and chapter preprocessors for Markdown books."""

__version__ = "0.1.0"

__all__ = ["config", "html", "index", "linkparse", "links", "preprocess"]