"""Small models of operating-system parts: disk layout, buffer cache, log,
file system, console and keyboard input, CLOCK paging, and classic Unix tools."""

__version__ = "0.1.0"