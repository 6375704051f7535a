"""Bulk assignment and hierarchy edits."""
