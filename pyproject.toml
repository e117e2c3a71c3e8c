[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lambdarie"
version = "0.1.0"
description = "Building blocks of a local function runtime interface emulator: logging, metering, API models and error-cause handling"
requires-python = ">=3.10"
dependencies = []
keywords = ["lambda", "runtime", "emulator", "extensions", "error-cause", "logging"]
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
    "Topic :: Software Development :: Testing",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lambdarie"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
