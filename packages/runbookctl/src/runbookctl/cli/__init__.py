"""Command-line entry points (`runbookctl`, `python -m runbookctl`)."""
