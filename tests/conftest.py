"""
Shared fakes for the cleaner tests.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from droplet_cleaner.client.base import Droplet
from droplet_cleaner.client.digitalocean import select_droplets
from droplet_cleaner.errors import DropletsClientError
from droplet_cleaner.machines import Machine


def make_droplet(name, age_seconds=3600, droplet_id=None):
    created_at = datetime.now(timezone.utc) - timedelta(seconds=age_seconds)
    return Droplet(id=droplet_id or abs(hash(name)) % 100000, name=name, created_at=created_at)


class FakeDropletsClient:
    """In-memory droplets client recording every call."""

    def __init__(self, droplets=None):
        self.droplets = list(droplets or [])
        self.list_calls = []
        self.stopped = []
        self.deleted = []
        self.list_error = None
        self.full_list_error = None
        self.stop_errors = set()
        self.delete_errors = set()

    def list_droplets(self, matcher, min_age):
        self.list_calls.append(min_age)
        if self.list_error is not None:
            raise self.list_error
        if min_age == timedelta(0) and self.full_list_error is not None:
            raise self.full_list_error

        raw = [
            {"id": d.id, "name": d.name, "created_at": d.created_at.isoformat()}
            for d in self.droplets
        ]
        return select_droplets(raw, matcher, min_age)

    def stop_droplet(self, droplet):
        self.stopped.append(droplet.name)
        if droplet.name in self.stop_errors:
            raise DropletsClientError("power_off failed", status_code=422)

    def delete_droplet(self, droplet):
        self.deleted.append(droplet.name)
        if droplet.name in self.delete_errors:
            raise DropletsClientError("delete failed", status_code=500)


class FakeMachinesFinder:
    """In-memory machines finder."""

    def __init__(self, machines=None):
        self.machines = list(machines or [])
        self.removed = []
        self.list_error = None

    def list_machines(self, matcher):
        if self.list_error is not None:
            raise self.list_error
        return [m for m in self.machines if matcher.match(m.name)]

    def remove_machine(self, name):
        present = any(m.name == name for m in self.machines)
        if present:
            self.machines = [m for m in self.machines if m.name != name]
            self.removed.append(name)
        return present


def write_machine(directory: Path, name: str, config=None) -> Path:
    machine_dir = directory / name
    machine_dir.mkdir(parents=True)
    if config is not None:
        with open(machine_dir / "config.json", "w") as f:
            if isinstance(config, str):
                f.write(config)
            else:
                json.dump(config, f)
    return machine_dir


@pytest.fixture
def fake_client():
    return FakeDropletsClient()


@pytest.fixture
def fake_finder():
    return FakeMachinesFinder()


@pytest.fixture
def machines_dir(tmp_path):
    directory = tmp_path / "machines"
    directory.mkdir()
    return directory


__all__ = ["Machine", "make_droplet", "write_machine", "FakeDropletsClient", "FakeMachinesFinder"]
