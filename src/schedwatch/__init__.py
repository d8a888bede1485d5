"""schedwatch - CPU scheduling delay probe for Linux processes."""

__version__ = "0.1.0"
