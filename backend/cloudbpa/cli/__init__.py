"""Command-line interface for the Cloud BPA engine."""
