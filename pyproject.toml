[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "easwbxml"
version = "0.1.0"
description = "Streaming WAP Binary XML 1.3 codec with the Exchange ActiveSync code pages"
requires-python = ">=3.10"
dependencies = []
keywords = ["wbxml", "activesync", "eas", "exchange", "binary-xml", "codec"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["easwbxml"]

[tool.hatch.build.targets.sdist]
include = ["easwbxml", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
