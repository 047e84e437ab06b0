"""Cross-repository knowledge base for multi-service workspaces."""

__version__ = "0.1.0"
