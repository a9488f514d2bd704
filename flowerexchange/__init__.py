"""Price-time priority matching engine for a flower exchange, driven by CSV order files."""

__version__ = "0.1.0"