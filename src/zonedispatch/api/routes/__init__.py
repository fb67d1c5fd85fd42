"""Route group exports."""

from . import drivers, health, orders, routes, zones

__all__ = ["drivers", "health", "orders", "routes", "zones"]
