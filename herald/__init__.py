"""Herald - uniform alert notification delivery to third-party receivers."""

__version__ = "0.1.0"
