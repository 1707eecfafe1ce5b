[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "quoteserver"
version = "0.1.0"
description = "A small web server that stores quotes, authors and tags in SQLite and serves them as paged HTML"
requires-python = ">=3.10"
keywords = ["quotes", "sqlite", "flask", "web", "pagination", "migrations"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
quoteserver = "quoteserver.app:main"
quoteserver-migrate = "quoteserver.migrations:main"

[tool.hatch.build.targets.wheel]
packages = ["quoteserver"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]
