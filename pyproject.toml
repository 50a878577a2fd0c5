[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stterm"
version = "0.8.4"
description = "A VT100/xterm-style terminal emulator core with pty handling and sixel image decoding"
requires-python = ">=3.10"
dependencies = [
    "wcwidth",
]
keywords = ["terminal", "emulator", "vt100", "xterm", "pty", "sixel", "ansi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals :: Terminal Emulators/X Terminals",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
stterm = "stterm.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["stterm"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 99
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
