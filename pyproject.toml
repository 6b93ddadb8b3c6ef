[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "parlour"
version = "0.1.0"
description = "A small chat messenger: a Tkinter desktop client, its line-based protocol, session state and an SQLite chat store"
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "messenger", "group chat", "tkinter", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: X11 Applications",
    "Environment :: Win32 (MS Windows)",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Natural Language :: Russian",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
parlour = "parlour.gui:main"

[tool.hatch.build.targets.wheel]
packages = ["parlour"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
