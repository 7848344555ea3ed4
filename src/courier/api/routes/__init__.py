"""Route group exports."""

from . import addresses, allocations, health, quotes

__all__ = ["addresses", "allocations", "health", "quotes"]
