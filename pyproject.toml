[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mdforge"
version = "0.1.0"
description = "Book configuration handling and Markdown chapter preprocessors: includes, playground snippets, title overrides, README-to-index renaming and external preprocessor commands"
requires-python = ">=3.11"
dependencies = [
    "tomli-w",
]
keywords = ["markdown", "book", "documentation", "preprocessor", "toml", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup :: Markdown",
    "Topic :: Documentation",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mdforge"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
