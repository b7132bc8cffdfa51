"""Almond classifieds backend: identity, sessions and the category tree."""
