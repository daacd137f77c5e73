"""
Periodic runner used by the ``service`` command.
"""

import logging
import threading
from typing import Optional

from .cleaner import CleanupResult, HangingDropletsCleaner
from .errors import CleanerError

logger = logging.getLogger(__name__)


class ServiceRunner:
    """Runs cleanup passes on a fixed interval, one pass at a time."""

    def __init__(self, cleaner: HangingDropletsCleaner, interval: int, stop_event: Optional[threading.Event] = None):
        self.cleaner = cleaner
        self.interval = max(int(interval), 1)
        self.stop_event = stop_event or threading.Event()
        self._pass_lock = threading.Lock()
        self.passes = 0
        self.failed_passes = 0

    def run_once(self) -> Optional[CleanupResult]:
        """
        Run a single pass, logging instead of raising on failure.

        Returns:
            The pass result, or None if it failed or another pass was running
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("Previous cleanup pass still running, skipping this one")
            return None

        try:
            self.passes += 1
            return self.cleaner.clean()
        except CleanerError as e:
            self.failed_passes += 1
            logger.error(f"Error during cleanup: {e}")
        except Exception:  # noqa: BLE001
            self.failed_passes += 1
            logger.exception("Unexpected error during cleanup")
        finally:
            self._pass_lock.release()
        return None

    def run_forever(self) -> None:
        """Run a pass immediately, then every ``interval`` seconds until stopped."""
        logger.info(f"Droplets cleanup interval: {self.interval}s")
        while not self.stop_event.is_set():
            self.run_once()
            if self.stop_event.wait(self.interval):
                break
        logger.info("Service stopped")

    def stop(self) -> None:
        self.stop_event.set()
