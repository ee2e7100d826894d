"""Command-line interface for mkdelegation."""
