[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "newtmgr"
version = "1.14.0.dev0"
description = "Device management helpers: connection profiles, connection strings, BLE definitions, core dump conversion and CoAP resource payloads"
requires-python = ">=3.10"
keywords = ["embedded", "device-management", "ble", "coap", "cbor", "coredump", "elf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
]
dependencies = [
    "cbor2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
newtmgr = "newtmgr.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["newtmgr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
