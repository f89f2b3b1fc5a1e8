[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orcworld"
version = "0.1.0"
description = "Game-world logic for a small tile-based online role-playing server: sectors, visibility, NPC movement, combat and timers."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "game",
    "mmorpg",
    "rpg",
    "server",
    "npc",
    "pathfinding",
    "a-star",
    "sectors",
]
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
    "Topic :: Games/Entertainment :: Role-Playing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["orcworld"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
