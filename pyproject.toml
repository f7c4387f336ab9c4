[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "motorpid"
version = "0.2.0"
description = "PID speed control for a DC motor with relay auto-tuning, RBF gain scheduling and step-response evaluation"
requires-python = ">=3.10"
dependencies = []
keywords = ["pid", "motor", "control", "ziegler-nichols", "rbf", "auto-tuning", "encoder"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["motorpid"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
