"""
Plateshare surplus-food marketplace package.

Restaurants list surplus food, users request portions of it, and the lifecycle
manager keeps listing quantities and request statuses consistent.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
