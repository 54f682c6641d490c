[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "x16chips"
version = "0.1.0"
description = "Models of the Commander X16 support chips: VERA memory, FX, layers, sprites, PSG, PCM and SPI, plus the VIAs, SMC, serial bus and a WAV recorder"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "commander-x16", "vera", "6502", "retro", "psg", "via"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["x16chips"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
