"""Command line interface for finca."""
