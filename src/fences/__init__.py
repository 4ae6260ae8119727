"""Fences: layer boundary checks for TypeScript/JavaScript source trees."""

__version__ = "0.1.0"
