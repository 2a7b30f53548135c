# mdforge

Configuration handling and chapter preprocessors for Markdown books.

`mdforge` reads a book's `book.toml`, gives typed access to the well-known
tables (`[book]`, `[build]`, `[rust]`, `[output.html]`) and keeps every other
table reachable by dotted key. It also provides the steps that run over
chapters before rendering:

- expansion of `{{#include ...}}`, `{{#rustdoc_include ...}}`,
  `{{#playground ...}}` and `{{#title ...}}` helpers (`mdforge.links`,
  `mdforge.linkparse`);
- renaming of `README.md` chapter paths to `index.md` (`mdforge.index`);
- running an external program as a preprocessor, exchanging data as JSON on
  stdin and stdout (`mdforge.preprocess`).

## Installation

```
pip install .
```

Run the tests with:

```
pip install ".[test]"
pytest
```

## Configuration

```python
from mdforge.config import Config

cfg = Config.from_str('''
[book]
title = "My Book"
authors = ["Jane Doe"]

[build]
build-dir = "out"

[other-table.foo]
bar = 123
''')

cfg.get("other-table.foo.bar")           # 123
cfg.book.title                           # "My Book"
cfg.build.build_dir                      # "out"

cfg.set("output.html.theme", "./themes")
html = cfg.html_config()                 # an HtmlConfig
html.theme_dir("/path/to/book")          # Path("/path/to/book/themes")

print(cfg.to_toml())
```

- `Config.from_disk(path)` loads a file; `Config.from_dict(data)` builds a
  configuration from an already parsed table.
- `Config.to_dict()` and `Config.to_toml()` write it back out. The `[build]`
  and `[rust]` tables are left out while they hold only defaults; TOML output
  has its keys sorted.
- `Config.get_renderer(name)` and `Config.get_preprocessor(name)` return the
  `[output.<name>]` or `[preprocessor.<name>]` table, or `None`.
- `Config.html_config()` returns the `[output.html]` settings as an
  `mdforge.html.HtmlConfig` (with `Fold`, `Playground`, `Code`, `Print` and
  `Search` sections), or `None` if the table is missing or invalid.
- Setting `book.<key>` or `build.<key>` updates the typed section; a value of
  the wrong type there is ignored.

Files in the old layout, with `title`, `authors`, `source` and `description`
at the top level and `destination` under `[output.html]`, are still read, with
a logged warning. Invalid files and values that cannot be stored as TOML raise
`mdforge.config.ConfigError`.

### Environment overrides

`Config.update_from_env()` applies variables whose names start with
`MDBOOK_`. A double underscore separates nested keys and a single underscore
becomes a dash; `mdforge.config.parse_env` does this conversion:

| Variable                | Key           |
|-------------------------|---------------|
| `MDBOOK_BOOK__TITLE`    | `book.title`  |
| `MDBOOK_FOO_BAR`        | `foo-bar`     |
| `MDBOOK_FOO_bar__baz`   | `foo-bar.baz` |

Each value is parsed as JSON first and taken as a plain string if that fails.
Pass a mapping as `environ` to read from something other than `os.environ`.

## Include helpers

```python
from mdforge.links import LinkPreprocessor

content, title = LinkPreprocessor().process_chapter(
    content="{{#include code.rs:2:5}}",
    src_dir="src",
    chapter_path="chapter.md",
    name="Chapter",
)
```

Files are read relative to the directory of the chapter inside `src_dir`.
Ranges use 1-based line numbers: `file:5` is line 5 alone, `file:5:` runs from
line 5 to the end, `file::5` covers lines 1 to 5, and `file:anchor` takes the
lines between `ANCHOR: anchor` and `ANCHOR_END: anchor`. `rustdoc_include`
keeps the rest of the file too, with each such line prefixed by `# `.
`playground` wraps the file in a ```` ```rust ```` code block, adding any extra
words as attributes. `{{#title My Title}}` is removed from the text and its
value is returned as the chapter title.

A helper written with a leading backslash, such as `\{{#include x}}`, is left
as literal text without the backslash. A helper whose file cannot be read is
left in the text as written and an error is logged. Nested includes stop at a
depth of ten.

`mdforge.links.replace_all` and `mdforge.links.render_link` are the functions
behind `process_chapter`. `mdforge.linkparse.find_links` yields the helpers
found in a string as `Link` objects with their positions, without reading any
files; `parse_include_path` and `parse_range_or_anchor` parse helper targets.

## README to index

```python
from mdforge.index import IndexPreprocessor, is_readme_file

is_readme_file("guide/Readme.md")                            # True
IndexPreprocessor().convert_path("src", "guide/README.md")   # PurePath("guide/index.md")
```

A warning is logged when an `index.md` already exists next to the README.

## External preprocessors

```python
from mdforge.preprocess import CmdPreprocessor, PreprocessorContext

pre = CmdPreprocessor("my-preprocessor", "my-preprocessor --flag")
ctx = PreprocessorContext(root="/path/to/book", config=cfg, renderer="html")
if pre.supports_renderer("html"):
    book = pre.run(ctx, book)
```

`supports_renderer` runs `<cmd> supports <renderer>`; an exit status of zero
means the renderer is supported. `run` writes `[context, book]` as JSON to the
program's stdin and reads the processed book as JSON from its stdout. A
program that cannot be started, a non-zero exit status or output that is not
JSON raises `mdforge.preprocess.PreprocessorError`. A program acting as a
preprocessor can decode its input with `CmdPreprocessor.parse_input(sys.stdin)`.

`mdforge.preprocess.Preprocessor` is the abstract base for preprocessors
that take a context and a book.

## What this package does not do

There is no command-line tool, no loading of a book's `SUMMARY.md` or chapter
tree, and no renderer. The book handed to `CmdPreprocessor.run` is whatever
JSON-ready data the caller supplies; `LinkPreprocessor` and
`IndexPreprocessor` work on one chapter's content or path at a time, and
walking the chapters of a book is left to the caller.