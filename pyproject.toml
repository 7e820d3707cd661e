[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "safekv"
version = "0.1.0"
description = "An embedded key-value store with snapshot transactions, saved to a single file per environment."
requires-python = ">=3.10"
keywords = ["key-value", "database", "storage", "transactions", "embedded"]
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
    "Topic :: Database :: Database Engines/Servers",
]
dependencies = [
    "sortedcontainers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["safekv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
