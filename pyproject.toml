[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "subgame_cfr"
version = "0.1.0"
description = "Counterfactual regret minimisation (CFR and CFR+) on public game trees, with subgame pruning and check-free subgames"
requires-python = ">=3.10"
keywords = ["cfr", "cfr+", "regret matching", "game theory", "imperfect information", "subgame pruning", "exploitability"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]
dependencies = [
    "matplotlib",
    "tqdm",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
subgame-cfr = "subgame_cfr.cli:main"

[tool.setuptools.packages.find]
include = ["subgame_cfr*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
