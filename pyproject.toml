[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "spectank"
version = "0.1.0"
description = "Capture-the-flag tank game client, wire protocol and small network upload tools"
requires-python = ">=3.10"
dependencies = []
keywords = ["game", "capture-the-flag", "udp", "protocol", "zx-spectrum", "retro"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Arcade",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
spectank = "spectank.client:main"
spectank-ethup = "spectank.uploader:main"
spectank-bwtest = "spectank.uploader:bwtest_main"

[tool.hatch.build.targets.wheel]
packages = ["spectank"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
