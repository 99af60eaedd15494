[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toxiclient"
version = "2.5.0"
description = "Client library and command-line tool for a TCP fault-injection proxy's HTTP API"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["proxy", "fault-injection", "resiliency", "testing", "network", "chaos"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
toxiclient = "toxiclient.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["toxiclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
