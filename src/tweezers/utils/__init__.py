"""Argument parsing and text rendering helpers."""
