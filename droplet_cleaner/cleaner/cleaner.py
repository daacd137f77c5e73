"""
Reconciliation of droplets against the local Docker Machine records.
"""

import logging
from datetime import timedelta
from typing import Iterable, List, Sequence, Set

from ..client.base import Droplet, DropletsClient
from ..machines import Machine, MachinesFinderProtocol
from ..prefixes import build_prefix_matcher
from .models import CleanerCounters, CleanupResult, CountersSnapshot

logger = logging.getLogger(__name__)


def tracked_names(machines: Iterable[Machine]) -> Set[str]:
    """Names of machines that already recorded a droplet id."""
    return {m.name for m in machines if m.tracked}


def find_hanging_droplets(droplets: Sequence[Droplet], machines: Sequence[Machine]) -> List[Droplet]:
    """
    Droplets without a machine record holding a non-zero droplet id.

    Args:
        droplets: Droplets old enough to be reconciled
        machines: Local machine records

    Returns:
        Hanging droplets, in listing order
    """
    tracked = tracked_names(machines)
    return [d for d in droplets if d.name not in tracked]


def find_zombie_machines(droplets: Sequence[Droplet], machines: Sequence[Machine]) -> List[Machine]:
    """
    Machine records with no droplet of the same name.

    Args:
        droplets: Full, unaged droplets listing
        machines: Local machine records

    Returns:
        Zombie machines, in listing order
    """
    names = {d.name for d in droplets}
    return [m for m in machines if m.name not in names]


class HangingDropletsCleaner:
    """Finds droplets unknown to Docker Machine and removes them."""

    def __init__(
        self,
        client: DropletsClient,
        machines_finder: MachinesFinderProtocol,
        droplet_age: int,
        runner_prefixes: Sequence[str],
        prune_zombies: bool = True,
    ):
        self.client = client
        self.machines_finder = machines_finder
        self.runner_prefixes = list(runner_prefixes)
        self.matcher = build_prefix_matcher(self.runner_prefixes)
        self.droplet_age = timedelta(seconds=droplet_age)
        self.prune_zombies = prune_zombies
        self.counters = CleanerCounters()
        self._delete = False

        logger.info(f"Droplet minimal age: {self.droplet_age}")

    @property
    def delete_enabled(self) -> bool:
        return self._delete

    def enable_delete(self) -> None:
        """Switch into destructive mode; there is no way back."""
        self._delete = True

    def snapshot(self) -> CountersSnapshot:
        return self.counters.snapshot()

    def clean(self) -> CleanupResult:
        """
        Run one cleanup pass.

        Listing failures propagate and abort the pass. Stop, delete and
        folder removal failures are counted and logged per droplet.

        Returns:
            CleanupResult describing what the pass did

        Raises:
            ListingError: If machines or droplets can't be listed
        """
        result = CleanupResult()

        logger.info("Starting droplets cleanup")
        try:
            machines = self.machines_finder.list_machines(self.matcher)
            logger.debug(f"Found {len(machines)} machines matching prefixes")

            droplets = self.client.list_droplets(self.matcher, self.droplet_age)
            logger.debug(f"Found {len(droplets)} droplets matching prefixes")

            if not droplets:
                result.skipped = True
                return result

            for droplet in find_hanging_droplets(droplets, machines):
                self._handle_hanging_droplet(droplet, result)

            if self.prune_zombies:
                self._clean_zombie_machines(machines, result)
        finally:
            logger.info(f"Finished droplets cleanup. Removed {result.removed_count} droplets")

        return result

    def _handle_hanging_droplet(self, droplet: Droplet, result: CleanupResult) -> None:
        result.hanging.append(droplet.name)
        logger.info(f"Will stop and delete: {droplet.name} (created_at: {droplet.created_at.isoformat()})")
        if not self._delete:
            return

        self._stop_droplet(droplet, result)
        self._delete_droplet(droplet, result)
        self._remove_machine_folder(droplet.name)

    def _stop_droplet(self, droplet: Droplet, result: CleanupResult) -> None:
        logger.debug(f"Stopping droplet '{droplet.name}'")
        try:
            self.client.stop_droplet(droplet)
        except Exception as e:
            self.counters.inc_stop_errors()
            result.stop_failed.append(droplet.name)
            logger.error(f"Error while stopping droplet '{droplet.name}': {e}")

    def _delete_droplet(self, droplet: Droplet, result: CleanupResult) -> None:
        logger.debug(f"Deleting droplet '{droplet.name}'")
        try:
            self.client.delete_droplet(droplet)
        except Exception as e:
            self.counters.inc_delete_errors()
            result.delete_failed.append(droplet.name)
            logger.error(f"Error while deleting droplet '{droplet.name}': {e}")
            return

        self.counters.inc_removed()
        result.removed.append(droplet.name)

    def _remove_machine_folder(self, name: str) -> bool:
        try:
            return self.machines_finder.remove_machine(name)
        except (OSError, ValueError) as e:
            logger.error(f"Failed cleaning up folder of {name}: {e}")
            return False

    def _clean_zombie_machines(self, machines: List[Machine], result: CleanupResult) -> None:
        logger.info("Cleaning up Zombie folders")
        all_droplets = self.client.list_droplets(self.matcher, timedelta(0))
        logger.info(f"Got {len(all_droplets)} droplets to sync with folders")

        for machine in find_zombie_machines(all_droplets, machines):
            logger.info(f"Going to clean machine folder of {machine.name}")
            if self._remove_machine_folder(machine.name):
                result.pruned_machines.append(machine.name)
