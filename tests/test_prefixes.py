"""
Tests for runner prefix matching.
"""

import pytest

from droplet_cleaner.errors import ConfigurationError
from droplet_cleaner.prefixes import build_prefix_matcher, matches_prefix


def test_prefix_matcher():
    matcher = build_prefix_matcher(["runner-abc", "runner-def"])

    assert matches_prefix(matcher, "runner-abc-1")
    assert matches_prefix(matcher, "runner-def")
    assert not matches_prefix(matcher, "my-runner-abc")


def test_prefix_matcher_skips_blank_entries():
    matcher = build_prefix_matcher(["", "  ", "runner-abc"])

    assert matches_prefix(matcher, "runner-abc-1")


def test_prefix_matcher_requires_prefix():
    with pytest.raises(ConfigurationError, match="at least one 'runner-prefix'"):
        build_prefix_matcher(["", "  "])


def test_invalid_prefix_pattern():
    with pytest.raises(ConfigurationError, match="Invalid runner prefix pattern"):
        build_prefix_matcher(["runner-("])
