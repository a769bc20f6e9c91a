[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cryokit"
version = "0.1.0"
description = "Command-line arguments, block and timestamp range specifications and output settings for blockchain data extraction"
requires-python = ">=3.10"
dependencies = []
keywords = ["ethereum", "blockchain", "evm", "json-rpc", "block-range", "data-extraction"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cryokit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
