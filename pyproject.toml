[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbsqlkit"
version = "0.1.0"
description = "Building blocks for a SQL warehouse client: parameter binding, result paging, date/time parsing and status polling"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "database", "driver", "pagination", "parameters", "polling"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbsqlkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
