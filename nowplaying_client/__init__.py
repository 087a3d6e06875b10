"""Now playing overlay client."""

__version__ = "1.0.0"
