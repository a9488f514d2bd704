[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flowerexchange"
version = "0.1.0"
description = "A price-time priority matching engine for a small flower exchange, driven by CSV order files."
requires-python = ">=3.10"
dependencies = []
keywords = ["matching engine", "order book", "exchange", "trading", "csv"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
flower-exchange = "flowerexchange.application:main"

[tool.hatch.build.targets.wheel]
packages = ["flowerexchange"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
