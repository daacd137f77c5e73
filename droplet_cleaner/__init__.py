"""
Hanging droplets cleaner.

Removes DigitalOcean droplets that Docker Machine no longer tracks and prunes
machine folders whose droplet is gone. Runs once from the CLI or as a service
exposing Prometheus metrics.
"""

__version__ = "0.1.0"
