"""Proximity-based ordering of pending visits."""
