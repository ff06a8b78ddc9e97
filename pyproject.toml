[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "metismr"
version = "0.1.0"
description = "An in-process MapReduce engine with array and B+ tree intermediate stores, plus classic MapReduce applications"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mapreduce",
    "word-count",
    "reverse-index",
    "kmeans",
    "histogram",
    "linear-regression",
    "pca",
    "matrix-multiplication",
    "b-tree",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
metismr-hist = "metismr.hist:main"
metismr-string-match = "metismr.string_match:main"
metismr-linear-regression = "metismr.linear_regression:main"
metismr-pca = "metismr.pca:main"
metismr-wc = "metismr.wc:main"
metismr-wr = "metismr.wr:main"
metismr-kmeans = "metismr.kmeans:main"
metismr-matrix-mult = "metismr.matrix_mult:main"

[tool.hatch.build.targets.wheel]
packages = ["metismr"]

[tool.hatch.build.targets.sdist]
include = ["metismr", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
