"""
Docker Machine records stored on the local disk.

Each machine lives in ``<machines_directory>/<name>/config.json``; the droplet
it was provisioned on is recorded under ``Driver.DropletID``.
"""

import json
import logging
import math
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Pattern, Protocol, Union

from .errors import MachineConfigError
from .prefixes import matches_prefix

logger = logging.getLogger(__name__)

DEFAULT_MACHINES_DIRECTORY = "/root/.docker/machine/machines"
CONFIG_FILE = "config.json"


@dataclass(frozen=True)
class Machine:
    """A machine record; ``droplet_id == 0`` means no droplet is attached yet."""
    name: str
    droplet_id: int = 0

    @property
    def tracked(self) -> bool:
        return self.droplet_id != 0


class MachinesFinderProtocol(Protocol):
    def list_machines(self, matcher: Pattern[str]) -> List[Machine]: ...

    def remove_machine(self, name: str) -> bool: ...


class MachinesFinder:
    """Reads machine records from a Docker Machine storage directory."""

    def __init__(self, machines_directory: Union[str, Path] = DEFAULT_MACHINES_DIRECTORY):
        self._machines_directory = Path(machines_directory)

    @property
    def machines_directory(self) -> Path:
        return self._machines_directory

    def list_machines(self, matcher: Pattern[str]) -> List[Machine]:
        """
        List machines whose directory name matches the prefix matcher.

        A matching directory without a readable config is an integrity error
        for the whole listing, not a skipped entry.

        Args:
            matcher: Anchored runner prefix pattern

        Returns:
            Machines sorted by name

        Raises:
            MachineConfigError: If the directory or any matching config can't be read
        """
        try:
            entries = sorted(self._machines_directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise MachineConfigError(
                f"Can't read machines directory {self._machines_directory}: {e}",
                path=self._machines_directory,
            ) from e

        machines = []
        for entry in entries:
            if not entry.is_dir() or not matches_prefix(matcher, entry.name):
                continue

            config = _read_config(entry / CONFIG_FILE)
            machines.append(Machine(name=entry.name, droplet_id=_droplet_id(config, entry / CONFIG_FILE)))

        return machines

    def machine_path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Invalid machine name: {name!r}")
        return self._machines_directory / name

    def remove_machine(self, name: str) -> bool:
        """
        Remove a machine directory and all its contents.

        Args:
            name: Machine name

        Returns:
            True if a directory was removed, False if there was nothing to remove
        """
        machine_dir = self.machine_path(name)
        if not machine_dir.exists():
            return False

        logger.info(f"Cleaning up the DockerMachine folder: {machine_dir}")
        shutil.rmtree(machine_dir)
        return True


def _read_config(config_file: Path) -> Dict[str, Any]:
    if not config_file.is_file():
        raise MachineConfigError(f"Missing machine config {config_file}", path=config_file)

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise MachineConfigError(f"Can't parse machine config {config_file}: {e}", path=config_file) from e

    if not isinstance(data, dict):
        raise MachineConfigError(f"Machine config {config_file} is not a JSON object", path=config_file)
    return data


def _droplet_id(config: Dict[str, Any], config_file: Path) -> int:
    driver = config.get("Driver")
    if not isinstance(driver, dict):
        return 0

    raw = driver.get("DropletID", 0)
    if raw is None:
        return 0
    # bool is an int subclass; floats must be finite whole numbers
    malformed = isinstance(raw, bool) or not isinstance(raw, (int, float))
    if isinstance(raw, float):
        malformed = not math.isfinite(raw) or raw != int(raw)
    if malformed:
        raise MachineConfigError(
            f"Malformed Driver.DropletID {raw!r} in {config_file}", path=config_file
        )
    return int(raw)
