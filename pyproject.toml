[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mmorpg"
version = "0.1.0"
description = "A small real-time multiplayer role-playing game server with maps, monsters, loot, equipment and a player market."
requires-python = ">=3.10"
dependencies = [
    "websockets",
]
keywords = ["game", "server", "mmorpg", "multiplayer", "websocket", "role-playing"]
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
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mmorpg"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]
