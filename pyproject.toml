[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gitopsengine"
version = "0.1.0"
description = "Health assessment, merge patches and managed-fields handling for Kubernetes resources"
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "gitops", "health", "merge-patch", "managed-fields"]
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
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gitopsengine"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
