[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fakepoker"
version = "0.1.0"
description = "WebSocket game server for a four-player bluffing card game with fake cards, bids and offers"
requires-python = ">=3.10"
keywords = ["game", "card game", "websocket", "multiplayer", "bluffing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment :: Board Games",
]
dependencies = [
    "aiohttp",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
fakepoker = "fakepoker.server:main"

[tool.hatch.build.targets.wheel]
packages = ["fakepoker"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
