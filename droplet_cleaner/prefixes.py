"""
Runner prefix matching shared by the machines scan and the droplets listing.
"""

import re
from typing import Pattern, Sequence

from .errors import ConfigurationError


def build_prefix_matcher(prefixes: Sequence[str]) -> Pattern[str]:
    """
    Compile the runner prefixes into one anchored pattern.

    Prefixes are joined as regular expression alternatives, so ``runner-a|b``
    style fragments are accepted as-is.

    Args:
        prefixes: Droplet name prefixes, at least one

    Returns:
        Pattern matching any name starting with one of the prefixes

    Raises:
        ConfigurationError: If no prefix is given or the pattern is invalid
    """
    cleaned = [p for p in prefixes if p and p.strip()]
    if not cleaned:
        raise ConfigurationError("You need to set at least one 'runner-prefix'")

    try:
        return re.compile(f"^({'|'.join(cleaned)})")
    except re.error as e:
        raise ConfigurationError(f"Invalid runner prefix pattern: {e}") from e


def matches_prefix(matcher: Pattern[str], name: str) -> bool:
    return matcher.match(name) is not None
