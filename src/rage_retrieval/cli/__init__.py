"""Command line interface for rage-retrieval."""
