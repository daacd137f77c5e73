"""
Hanging droplets reconciliation engine.
"""

from .cleaner import HangingDropletsCleaner, find_hanging_droplets, find_zombie_machines
from .models import CleanerCounters, CleanupResult, CountersSnapshot

__all__ = [
    "HangingDropletsCleaner",
    "find_hanging_droplets",
    "find_zombie_machines",
    "CleanerCounters",
    "CleanupResult",
    "CountersSnapshot",
]
