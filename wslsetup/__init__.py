"""wslsetup — idempotent developer machine bootstrap."""

__version__ = "0.1.0"
