"""Change tracking and marker-file sync coordination for markdown vaults."""

__version__ = "0.1.0"
