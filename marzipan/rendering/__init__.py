"""Palette mapping and image export."""
