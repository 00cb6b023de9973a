"""asana-cli: a JSON-first command line client for Asana."""

__version__ = "0.1.0"
