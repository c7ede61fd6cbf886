"""Renderers: edge label text and SVG path strings."""
