"""Command line entry points (run from the repository root with `python -m scripts.<name>`)."""
