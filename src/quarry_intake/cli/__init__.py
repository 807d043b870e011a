"""Command line interface (``python -m quarry_intake.cli``)."""
