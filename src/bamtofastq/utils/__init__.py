"""Utility helpers for bamtofastq."""
