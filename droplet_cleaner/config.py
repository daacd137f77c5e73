"""
Validated settings for the cleaner commands.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator

from .errors import ConfigurationError
from .machines import DEFAULT_MACHINES_DIRECTORY

DEFAULT_INTERVAL = 900
DEFAULT_DROPLET_AGE = DEFAULT_INTERVAL


class CleanerSettings(BaseModel):
    digitalocean_token: str
    runner_prefixes: List[str]
    machines_directory: str = DEFAULT_MACHINES_DIRECTORY
    droplet_age: int = DEFAULT_DROPLET_AGE
    prune_zombies: bool = True
    interval: int = DEFAULT_INTERVAL
    listen: Optional[str] = None

    @field_validator("digitalocean_token")
    @classmethod
    def _token_present(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Missing DigitalOcean API Token")
        return value.strip()

    @field_validator("runner_prefixes")
    @classmethod
    def _at_least_one_prefix(cls, value: List[str]) -> List[str]:
        prefixes = [p.strip() for p in value if p and p.strip()]
        if not prefixes:
            raise ValueError("You need to set at least one 'runner-prefix'")
        return prefixes

    @field_validator("droplet_age")
    @classmethod
    def _age_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("droplet age can't be negative")
        return value

    @field_validator("interval")
    @classmethod
    def _interval_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("interval must be at least 1 second")
        return value

    @field_validator("listen")
    @classmethod
    def _listen_address(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        parse_listen_address(value)
        return value

    @property
    def listen_address(self) -> Optional[Tuple[str, int]]:
        return parse_listen_address(self.listen) if self.listen else None


def parse_listen_address(value: str) -> Tuple[str, int]:
    """
    Split ``host:port`` (or ``:port``) into a bind host and port.

    Args:
        value: Listen address

    Returns:
        Tuple of host and port, host defaults to 0.0.0.0

    Raises:
        ValueError: If the port is missing or out of range
    """
    host, sep, port = value.rpartition(":")
    if not sep:
        raise ValueError(f"Invalid metrics server address: {value}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid metrics server port: {value}") from None
    if not 0 < port_number < 65536:
        raise ValueError(f"Invalid metrics server port: {value}")
    return host.strip("[]") or "0.0.0.0", port_number


def load_settings(**values) -> CleanerSettings:
    """
    Validate raw option values into settings.

    Raises:
        ConfigurationError: If any value is invalid
    """
    try:
        return CleanerSettings(**values)
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ConfigurationError(messages) from e
