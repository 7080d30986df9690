[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slslog"
version = "0.1.0"
description = "Log service data models, retry helpers and a batching, retrying log producer"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "log service", "producer", "batching", "retry", "backoff"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["slslog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
