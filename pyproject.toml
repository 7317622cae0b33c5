[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "garyrm"
version = "0.1.0"
description = "CAN motor models, DR16 remote receiver decoding and shooter control logic for RoboMaster-style robots"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["can", "robomaster", "motor", "dr16", "remote-control", "shooter", "robotics"]
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
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
garyrm-dr16 = "garyrm.dr16:main"

[tool.hatch.build.targets.wheel]
packages = ["garyrm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
