"""LSP Engine - Logic Scoring of Preferences evaluation library."""

__version__ = "1.0.0"
