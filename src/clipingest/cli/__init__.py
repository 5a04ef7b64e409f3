"""Command-line interface for clipingest."""
