"""Command-line interface (``ghsync``)."""
