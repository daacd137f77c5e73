"""
DigitalOcean v2 API client covering the droplet calls the cleaner needs.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Pattern, Tuple

import requests

from ..errors import ConfigurationError, DropletsClientError
from ..prefixes import matches_prefix
from ..version import APP_VERSION
from .base import Droplet

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.digitalocean.com/v2"
PER_PAGE = 250
REQUEST_TIMEOUT = 30
STOP_TIMEOUT = 60


def parse_created_at(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, returning None when it can't be read."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def select_droplets(
    raw_droplets: List[Dict[str, Any]],
    matcher: Pattern[str],
    min_age: timedelta,
    now: Optional[datetime] = None,
) -> List[Droplet]:
    """
    Keep droplets matching the prefix that are at least ``min_age`` old.

    Droplets with an unparseable creation time are dropped, since their age
    can't be proven.

    Args:
        raw_droplets: Droplet objects as returned by the API
        matcher: Anchored runner prefix pattern
        min_age: Minimal droplet age, zero keeps every matching droplet
        now: Reference time, defaults to the current UTC time

    Returns:
        Selected droplets in API order

    Raises:
        DropletsClientError: If a selected droplet has no usable id
    """
    now = now or datetime.now(timezone.utc)
    selected = []

    for raw in raw_droplets:
        name = raw.get("name") or ""
        if not matches_prefix(matcher, name):
            continue

        created_at = parse_created_at(raw.get("created_at"))
        if created_at is None:
            logger.debug(f"Skipping droplet '{name}' with unreadable created_at {raw.get('created_at')!r}")
            continue
        if now - created_at < min_age:
            continue

        try:
            droplet_id = int(raw["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise DropletsClientError(f"Malformed droplet '{name}' in API response: {e!r}") from e

        selected.append(Droplet(id=droplet_id, name=name, created_at=created_at))

    return selected


class DigitalOceanClient:
    """Thin wrapper over the DigitalOcean REST API using a requests session."""

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not api_token:
            raise ConfigurationError("Missing DigitalOcean API Token")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
            "User-Agent": APP_VERSION.user_agent(),
        })

    def _request(self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs) -> requests.Response:
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"

        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as e:
            raise DropletsClientError(f"DigitalOcean API request {method} {url} failed: {e}") from e

        if not response.ok:
            raise DropletsClientError(
                f"DigitalOcean API error: {response.status_code} - {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    def _list_droplets_page(self, url: str, params: Optional[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        response = self._request("GET", url, params=params)
        try:
            body = response.json()
        except ValueError as e:
            raise DropletsClientError(f"DigitalOcean API returned invalid JSON: {e}") from e

        droplets = body.get("droplets") or []
        next_url = ((body.get("links") or {}).get("pages") or {}).get("next")
        return droplets, next_url

    def list_droplets(self, matcher: Pattern[str], min_age: timedelta) -> List[Droplet]:
        """
        List every droplet matching the prefix that is at least ``min_age`` old.

        Follows ``links.pages.next`` until the last page.

        Args:
            matcher: Anchored runner prefix pattern
            min_age: Minimal droplet age

        Returns:
            Selected droplets across all pages

        Raises:
            DropletsClientError: If any page can't be fetched
        """
        now = datetime.now(timezone.utc)
        droplets: List[Droplet] = []

        url: Optional[str] = "/droplets"
        params: Optional[Dict[str, Any]] = {"page": 1, "per_page": PER_PAGE}
        while url:
            page, url = self._list_droplets_page(url, params)
            droplets.extend(select_droplets(page, matcher, min_age, now=now))
            # the next link already carries page and per_page
            params = None

        return droplets

    def stop_droplet(self, droplet: Droplet) -> None:
        self._request(
            "POST",
            f"/droplets/{droplet.id}/actions",
            json={"type": "power_off"},
            timeout=STOP_TIMEOUT,
        )

    def delete_droplet(self, droplet: Droplet) -> None:
        self._request("DELETE", f"/droplets/{droplet.id}")


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
