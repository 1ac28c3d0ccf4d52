"""Command-line entry points for panel rate adjustment."""
