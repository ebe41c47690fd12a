"""Shared protocol types."""
