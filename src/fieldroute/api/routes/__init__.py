"""Route group exports."""

from . import customers, distribution, health, pois, routes, team, visits

__all__ = ["health", "visits", "routes", "distribution", "team", "pois", "customers"]
