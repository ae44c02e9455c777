"""Utilities package for the Recipe COGS Engine."""
