"""Field-sales visit routing backend."""

__version__ = "0.1.0"
