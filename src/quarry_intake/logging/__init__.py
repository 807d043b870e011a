"""Labeled console logging and the rejection log."""
