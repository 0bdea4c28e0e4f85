"""Command line interface for stacknet."""
