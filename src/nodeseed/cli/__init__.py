"""Command-line interface for nodeseed."""
