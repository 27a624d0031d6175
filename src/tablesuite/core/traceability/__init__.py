"""Manifest e Event Log de runs."""
