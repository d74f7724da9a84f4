[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "secmonitor"
version = "0.1.0"
description = "Lexical and semantic risk analysis of shell commands for security monitoring"
requires-python = ">=3.10"
dependencies = []
keywords = ["security", "shell", "lexer", "risk-analysis", "monitoring", "threat-detection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: System :: Monitoring",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["secmonitor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
