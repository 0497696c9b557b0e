[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tfregistry-mcp"
version = "0.1.0"
description = "A Model Context Protocol server over stdio that exposes Terraform Registry providers, docs and modules as tools and resources."
requires-python = ">=3.10"
keywords = ["terraform", "registry", "mcp", "model-context-protocol", "json-rpc", "modules", "providers"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
tfregistry-mcp = "tfregistry_mcp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tfregistry_mcp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
