[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "secretshare"
version = "0.1.0"
description = "In-memory sharing of secrets between namespaces: exports, import matching, image pull secret merging and token caching"
requires-python = ">=3.10"
dependencies = []
keywords = ["secrets", "namespaces", "reconciler", "dockerconfigjson", "tokens"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools]
packages = ["secretshare"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
