"""Smart Travel Companion.

A location tracking companion: a small REST service persisting location
points to a JSON file, a client that samples positions and keeps them in
sync with the service, travel statistics, and path/map visualizations.
"""

__version__ = "1.0.0"

__author__ = "travel_companion contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
