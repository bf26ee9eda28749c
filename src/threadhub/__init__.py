"""threadhub: threaded social feed backend."""

__version__ = "0.1.0"
