"""
Build and version information.
"""

import os
import platform
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import metadata
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Gauge

NAME = "hanging-droplets-cleaner"
DISTRIBUTION = "droplet-cleaner"


@dataclass(frozen=True)
class AppVersionInfo:
    """Version details reported in logs, the user agent and metrics."""
    name: str
    version: str
    revision: str
    branch: str
    python_version: str
    built_at: datetime
    os: str
    architecture: str

    def user_agent(self) -> str:
        return (
            f"{self.name} {self.version} "
            f"({self.branch}; python {self.python_version}; {self.os}/{self.architecture})"
        )

    def line(self) -> str:
        return f"{self.name} {self.version} ({self.revision})"

    def short_line(self) -> str:
        return f"{self.version} ({self.revision})"

    def extended(self) -> str:
        """Multi-line version report printed by ``--version``."""
        return (
            f"Version:        {self.version}\n"
            f"Git revision:   {self.revision}\n"
            f"Git branch:     {self.branch}\n"
            f"Python version: {self.python_version}\n"
            f"Built:          {self.built_at.strftime('%a, %d %b %Y %H:%M:%S %z')}\n"
            f"OS/Arch:        {self.os}/{self.architecture}\n"
        )

    def labels(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "version": self.version,
            "revision": self.revision,
            "branch": self.branch,
            "python_version": self.python_version,
            "built_at": self.built_at.isoformat(),
            "os": self.os,
            "architecture": self.architecture,
        }


def _package_version() -> str:
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "dev"


def _built_at(raw: Optional[str]) -> datetime:
    if raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def load_version_info() -> AppVersionInfo:
    """
    Build the version info from package metadata and build-time env vars.

    ``DROPLET_CLEANER_REVISION``, ``DROPLET_CLEANER_BRANCH`` and
    ``DROPLET_CLEANER_BUILT`` (RFC 3339) are set by the release pipeline.

    Returns:
        AppVersionInfo for the running process
    """
    return AppVersionInfo(
        name=NAME,
        version=_package_version(),
        revision=os.environ.get("DROPLET_CLEANER_REVISION", "HEAD"),
        branch=os.environ.get("DROPLET_CLEANER_BRANCH", "HEAD"),
        python_version=platform.python_version(),
        built_at=_built_at(os.environ.get("DROPLET_CLEANER_BUILT")),
        os=platform.system().lower(),
        architecture=platform.machine().lower(),
    )


def version_collector(info: AppVersionInfo, registry: CollectorRegistry) -> Gauge:
    """
    Register a constant ``1`` gauge labelled with the build details.

    Args:
        info: Version info to expose
        registry: Registry the gauge is attached to

    Returns:
        The registered gauge
    """
    labels = info.labels()
    build_info = Gauge(
        "hanging_droplets_cleaner_version_info",
        "A metric with a constant '1' value labeled by different build stats fields.",
        sorted(labels),
        registry=registry,
    )
    build_info.labels(**labels).set(1)
    return build_info


APP_VERSION = load_version_info()
