[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scenariomgr"
version = "0.1.0"
description = "Scenario manager for a cloud emulator: a REST service that stores topology, network, compute, service and test configurations and drives actions on them through pluggable service clients."
requires-python = ">=3.10"
keywords = [
    "cloud",
    "emulator",
    "scenario",
    "topology",
    "network",
    "rest",
    "flask",
    "orchestration",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask>=2.2",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
scenariomgr = "scenariomgr.app:main"
ovs-bench = "scenariomgr.ovsbench:main"

[tool.hatch.build.targets.wheel]
packages = ["scenariomgr"]

[tool.hatch.build.targets.sdist]
include = [
    "scenariomgr",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
