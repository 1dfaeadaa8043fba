"""Simulate, fit and summarize a two-condition multilevel experiment."""

__version__ = "0.1.0"
