[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bardak"
version = "0.1.0"
description = "Binary message protocol toolkit: .pan protocol definitions, message dumps, codecs, header generation and server module interfaces"
requires-python = ">=3.10"
dependencies = []
keywords = ["binmsg", "protocol", "analyzer", "codec", "code-generation", "plugins"]
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Software Development :: Code Generators",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bardak-pan = "bardak.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["bardak"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
