[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flyteapi"
version = "0.1.0"
description = "Event-driven workflow core: flows of steps that turn pack events into actions, with request handlers and in-memory stores"
requires-python = ">=3.10"
keywords = ["workflow", "automation", "events", "actions", "wsgi", "chatops"]
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
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "werkzeug>=2.2",
    "jinja2>=3.0",
    "jsonschema>=4.0",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["flyteapi"]

[tool.hatch.build.targets.sdist]
include = ["flyteapi", "tests", "README.md"]

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
