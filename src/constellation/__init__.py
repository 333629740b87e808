"""Version tree engine for Constellation documents."""

__version__ = "0.1.0"
