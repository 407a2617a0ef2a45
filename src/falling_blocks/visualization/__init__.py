"""Pygame front end: board renderer and keyboard play loop."""
