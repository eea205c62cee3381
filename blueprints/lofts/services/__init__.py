"""Loft booking services package."""
