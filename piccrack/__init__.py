"""Text from images split into words and phrases, stored and counted."""

__version__ = "0.1.0"