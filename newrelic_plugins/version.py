"""Plugin version reported in every output envelope."""

__version__ = "1.0.0"
