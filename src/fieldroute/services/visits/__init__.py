"""Visit lifecycle, board and annotations."""
