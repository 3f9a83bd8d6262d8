[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fusemlcore"
version = "0.1.0"
description = "Workflow, codeset and extension registry domain model with Tekton resource generation for an MLOps workflow service"
requires-python = ">=3.10"
dependencies = []
keywords = ["mlops", "workflow", "tekton", "pipeline", "kubernetes", "ci"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fusemlcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
