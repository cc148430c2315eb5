"""Command-line interface and administrative commands."""
