"""
Droplet model and the client interface the cleaner depends on.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Pattern, Protocol


@dataclass(frozen=True)
class Droplet:
    """A DigitalOcean droplet as seen by the cleaner."""
    id: int
    name: str
    created_at: datetime


class DropletsClient(Protocol):
    def list_droplets(self, matcher: Pattern[str], min_age: timedelta) -> List[Droplet]: ...

    def stop_droplet(self, droplet: Droplet) -> None: ...

    def delete_droplet(self, droplet: Droplet) -> None: ...
