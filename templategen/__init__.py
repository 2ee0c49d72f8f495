"""templategen: generate files from JSON models and per-template settings."""

__version__ = "0.1.0"
