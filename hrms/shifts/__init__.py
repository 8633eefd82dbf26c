"""Shift definitions per company."""
