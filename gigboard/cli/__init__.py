"""Gigboard command-line interface."""
