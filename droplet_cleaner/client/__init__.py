"""
Clients for the cloud provider API.
"""

from .base import Droplet, DropletsClient
from .digitalocean import DigitalOceanClient

__all__ = [
    "Droplet",
    "DropletsClient",
    "DigitalOceanClient",
]
