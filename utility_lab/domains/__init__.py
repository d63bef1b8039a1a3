"""Reference domains built on the public capability API."""

from . import number, vector

__all__ = ["number", "vector"]
