"""Serial motor bus, packet protocol and stand-up sequencing for a quadruped robot."""

__version__ = "0.1.0"