import pytest

from mdforge.config import (
    BookConfig,
    BuildConfig,
    Config,
    ConfigError,
    RustConfig,
    RustEdition,
    parse_env,
)
from mdforge.html import HtmlConfig, Playground

COMPLEX_CONFIG = """
[book]
title = "Some Book"
authors = ["Jane Doe <jane@example.com>"]
description = "A completely useless book"
multilingual = true
src = "source"
language = "ja"

[build]
build-dir = "outputs"
create-missing = false
use-default-preprocessors = true

[output.html]
theme = "./themedir"
default-theme = "rust"
curly-quotes = true
google-analytics = "123456"
additional-css = ["./foo/bar/baz.css"]
git-repository-url = "https://foo.example.com/"
git-repository-icon = "fa-code-fork"

[output.html.playground]
editable = true
editor = "ace"

[output.html.redirect]
"index.html" = "overview.html"
"nexted/page.md" = "https://example.com/"

[preprocessor.first]

[preprocessor.second]
"""

EDITION_TEMPLATE = """
[book]
title = "mdBook Documentation"
description = "Create book from markdown files. Like Gitbook but implemented in Rust"
authors = ["Mathieu David"]
src = "./source"
[rust]
edition = "{edition}"
"""


def encode_env_var(key):
    return "MDBOOK_" + key.upper().replace(".", "__").replace("-", "_")


def test_load_a_complex_config_file():
    got = Config.from_str(COMPLEX_CONFIG)

    assert got.book == BookConfig(
        title="Some Book",
        authors=["Jane Doe <jane@example.com>"],
        description="A completely useless book",
        multilingual=True,
        src="source",
        language="ja",
    )
    assert got.build == BuildConfig(
        build_dir="outputs",
        create_missing=False,
        use_default_preprocessors=True,
        extra_watch_dirs=[],
    )
    assert got.rust == RustConfig(edition=None)
    assert got.html_config() == HtmlConfig(
        curly_quotes=True,
        google_analytics="123456",
        additional_css=["./foo/bar/baz.css"],
        theme="./themedir",
        default_theme="rust",
        playground=Playground(
            editable=True,
            copyable=True,
            copy_js=True,
            line_numbers=False,
            runnable=True,
        ),
        git_repository_url="https://foo.example.com/",
        git_repository_icon="fa-code-fork",
        redirect={
            "index.html": "overview.html",
            "nexted/page.md": "https://example.com/",
        },
    )


def test_disable_runnable():
    src = """
    [book]
    title = "Some Book"
    description = "book book book"
    authors = ["Shogo Takata"]

    [output.html.playground]
    runnable = false
    """
    got = Config.from_str(src)
    assert got.html_config().playground.runnable is False


def test_edition_2015_and_book():
    got = Config.from_str(EDITION_TEMPLATE.format(edition="2015"))
    assert got.book == BookConfig(
        title="mdBook Documentation",
        description="Create book from markdown files. Like Gitbook but implemented in Rust",
        authors=["Mathieu David"],
        src="./source",
    )
    assert got.rust == RustConfig(edition=RustEdition.E2015)


@pytest.mark.parametrize(
    "edition, expected",
    [
        ("2015", RustEdition.E2015),
        ("2018", RustEdition.E2018),
        ("2021", RustEdition.E2021),
    ],
)
def test_editions(edition, expected):
    got = Config.from_str(EDITION_TEMPLATE.format(edition=edition))
    assert got.rust == RustConfig(edition=expected)


def test_load_arbitrary_output_type():
    src = """
    [output.random]
    foo = 5
    bar = "Hello World"
    baz = [true, true, false]
    """
    cfg = Config.from_str(src)
    assert cfg.get("output.random") == {
        "foo": 5,
        "bar": "Hello World",
        "baz": [True, True, False],
    }
    assert cfg.get("output.random.baz") == [True, True, False]


def test_mutate_some_stuff():
    config = Config.from_str(COMPLEX_CONFIG)
    key = "output.html.playground.editable"
    assert config.get(key) is True
    config.get("output.html.playground")["editable"] = False
    assert config.get(key) is False


def test_can_still_load_the_previous_format():
    src = """
    title = "mdBook Documentation"
    description = "Create book from markdown files. Like Gitbook but implemented in Rust"
    authors = ["Mathieu David"]
    source = "./source"

    [output.html]
    destination = "my-book"
    theme = "my-theme"
    curly-quotes = true
    google-analytics = "123456"
    additional-css = ["custom.css", "custom2.css"]
    additional-js = ["custom.js"]
    """
    got = Config.from_str(src)
    assert got.book == BookConfig(
        title="mdBook Documentation",
        description="Create book from markdown files. Like Gitbook but implemented in Rust",
        authors=["Mathieu David"],
        src="./source",
    )
    assert got.build == BuildConfig(
        build_dir="my-book",
        create_missing=True,
        use_default_preprocessors=True,
        extra_watch_dirs=[],
    )
    assert got.html_config() == HtmlConfig(
        theme="my-theme",
        curly_quotes=True,
        google_analytics="123456",
        additional_css=["custom.css", "custom2.css"],
        additional_js=["custom.js"],
    )


def test_set_a_config_item():
    cfg = Config()
    key = "foo.bar.baz"
    assert cfg.get(key) is None
    cfg.set(key, "Something Interesting")
    assert cfg.get(key) == "Something Interesting"


@pytest.mark.parametrize(
    "src, expected",
    [
        ("FOO", None),
        ("MDBOOK_foo", "foo"),
        ("MDBOOK_FOO__bar__baz", "foo.bar.baz"),
        ("MDBOOK_FOO_bar__baz", "foo-bar.baz"),
    ],
)
def test_parse_env_vars(src, expected):
    assert parse_env(src) == expected


def test_update_config_using_env_var():
    cfg = Config()
    assert cfg.get("foo.bar") is None
    cfg.update_from_env({encode_env_var("foo.bar"): "baz"})
    assert cfg.get("foo.bar") == "baz"


def test_update_config_using_env_var_and_complex_value():
    cfg = Config()
    key = "foo-bar.baz"
    assert cfg.get(key) is None
    cfg.update_from_env({encode_env_var(key): '{"array": [1, 2, 3], "number": 13.37}'})
    assert cfg.get(key) == {"array": [1, 2, 3], "number": 13.37}


def test_update_book_title_via_env():
    cfg = Config()
    assert cfg.book.title != "Something else"
    cfg.update_from_env({"MDBOOK_BOOK__TITLE": "Something else"})
    assert cfg.book.title == "Something else"


def test_update_whole_book_table_via_env():
    cfg = Config()
    cfg.update_from_env(
        {"MDBOOK_BOOK": '{"title": "My Awesome Book", "authors": ["Jane Doe"]}'}
    )
    assert cfg.book.title == "My Awesome Book"
    assert cfg.book.authors == ["Jane Doe"]


def test_update_from_env_ignores_other_variables():
    cfg = Config()
    cfg.update_from_env({"HOME": "/tmp", "PATH": "/bin"})
    assert cfg.rest == {}


def test_file_404_default():
    src = """
    [output.html]
    destination = "my-book"
    """
    html_config = Config.from_str(src).html_config()
    assert html_config.input_404 is None


def test_file_404_custom():
    src = """
    [output.html]
    input-404= "missing.md"
    output-404= "missing.html"
    """
    html_config = Config.from_str(src).html_config()
    assert html_config.input_404 == "missing.md"


@pytest.mark.parametrize(
    "src",
    [
        """
        [book]
        title = "mdBook Documentation"
        language = ["en", "pt-br"]
        authors = ["Mathieu David"]
        """,
        """
        [book]
        title = 20
        language = "en"
        """,
        """
        [build]
        build-dir = 99
        create-missing = false
        """,
        """
        [rust]
        edition = "1999"
        """,
        "this is not toml",
    ],
)
def test_invalid_configs(src):
    with pytest.raises(ConfigError, match="Invalid configuration file"):
        Config.from_str(src)


def test_print_config():
    html_config = Config.from_str("[output.html.print]\nenable = false\n").html_config()
    assert html_config.print.enable is False
    assert html_config.print.page_break is True

    html_config = Config.from_str("[output.html.print]\npage-break = false\n").html_config()
    assert html_config.print.enable is True
    assert html_config.print.page_break is False


def test_invalid_html_config_gives_none():
    cfg = Config.from_str('[output.html]\ncurly-quotes = "yes"\n')
    assert cfg.html_config() is None


def test_html_config_absent():
    assert Config().html_config() is None


def test_default_to_toml():
    expected = '[book]\nauthors = []\nlanguage = "en"\nmultilingual = false\nsrc = "src"\n'
    assert Config().to_toml() == expected


def test_custom_locations_to_toml():
    cfg = Config()
    cfg.book.src = "in"
    cfg.build.build_dir = "out"
    expected = (
        '[book]\nauthors = []\nlanguage = "en"\nmultilingual = false\nsrc = "in"\n\n'
        '[build]\nbuild-dir = "out"\ncreate-missing = true\nextra-watch-dirs = []\n'
        "use-default-preprocessors = true\n"
    )
    assert cfg.to_toml() == expected


def test_toml_round_trip():
    cfg = Config.from_str(COMPLEX_CONFIG)
    cfg.rust.edition = RustEdition.E2018
    assert Config.from_str(cfg.to_toml()) == cfg


def test_get_renderer_and_preprocessor():
    cfg = Config.from_str(COMPLEX_CONFIG)
    assert cfg.get_renderer("html")["theme"] == "./themedir"
    assert cfg.get_renderer("missing") is None
    assert cfg.get_preprocessor("first") == {}
    assert cfg.get_preprocessor("third") is None


def test_from_disk(tmp_path):
    path = tmp_path / "book.toml"
    path.write_text('[book]\ntitle = "On Disk"\n', encoding="utf-8")
    assert Config.from_disk(path).book.title == "On Disk"


def test_from_disk_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Unable to open"):
        Config.from_disk(tmp_path / "nope.toml")


def test_set_book_and_build_fields():
    cfg = Config()
    cfg.set("book.src", "src2")
    cfg.set("build.create-missing", False)
    assert cfg.book.src == "src2"
    assert cfg.build.create_missing is False


def test_set_invalid_book_field_is_ignored():
    cfg = Config()
    cfg.set("book.title", 20)
    assert cfg.book.title is None


def test_set_unrepresentable_value_raises():
    with pytest.raises(ConfigError):
        Config().set("foo", None)


def test_set_clobbers_non_table():
    cfg = Config()
    cfg.set("output.html", 5)
    cfg.set("output.html.theme", "./themes")
    assert cfg.get("output.html") == {"theme": "./themes"}
    assert cfg.html_config().theme == "./themes"