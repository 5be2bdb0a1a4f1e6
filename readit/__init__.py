"""readit — database tooling and service entry point."""

__version__ = "0.1.0"
