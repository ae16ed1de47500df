[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "enitech_thruster"
version = "0.1.0"
description = "CAN protocol handling, SDO/NMT requests and performance monitoring for Enitech underwater thrusters"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["can", "canbus", "canopen", "thruster", "sdo", "nmt", "pdo", "robotics", "underwater"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN) :: CANopen",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["enitech_thruster"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
