[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lsotel"
version = "1.11.1"
description = "Process, host and runtime metric instrumentation with aggregation kinds and temporality"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = ["metrics", "telemetry", "monitoring", "instrumentation", "cpu", "runtime"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["lsotel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
