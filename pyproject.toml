[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtnetlink"
version = "2.0.0"
description = "Encode and decode Linux route netlink link, route, rule and neighbour messages, with address, link and route helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "netlink",
    "rtnetlink",
    "linux",
    "routing",
    "networking",
    "iproute",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtnetlink"]

[tool.hatch.build.targets.sdist]
include = ["rtnetlink", "tests"]

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
