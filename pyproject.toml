[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "teachos"
version = "0.1.0"
description = "Small operating-system teaching models: a block file system with logging, a buffer cache, a keyboard decoder, CLOCK page eviction and classic Unix tools"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating systems",
    "education",
    "file system",
    "buffer cache",
    "write-ahead log",
    "page replacement",
    "clock algorithm",
    "grep",
    "shell",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Operating System",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
teachos-clock = "teachos.clock:main"
teachos-mkfs = "teachos.mkfs:main"
teachos-grep = "teachos.grep:main"
teachos-cat = "teachos.commands:cat_main"
teachos-echo = "teachos.commands:echo_main"
teachos-simple-cat = "teachos.commands:simple_cat_main"
teachos-hello = "teachos.commands:hello_main"
teachos-shell = "teachos.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["teachos"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
