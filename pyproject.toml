[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "robodog"
version = "0.1.0"
description = "Serial motor bus control and stand-up sequencing for a twelve-joint quadruped robot"
requires-python = ">=3.10"
keywords = ["robotics", "quadruped", "motor", "serial", "crc-ccitt"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
robodog = "robodog.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["robodog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
