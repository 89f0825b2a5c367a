"""Command-line interface for tooth-index."""
