"""
Pytest configuration and fixtures for refill tests.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from refill import Rule, RuleSet


@dataclass
class Human:
    """Record filled by the human rule set."""

    name: str = ""
    age: int = 0
    height: int | None = None


@pytest.fixture
def human() -> Human:
    """Create an empty Human record."""
    return Human()


@pytest.fixture
def human_rules() -> RuleSet:
    """Create a two-rule set describing people by age or height."""
    return RuleSet(
        [
            Rule(
                r"^(?P<name>\w+) is ((?P<age>\d+)( years old)?|old|great)$",
                Human(),
                label="age",
            ),
            Rule(
                r"^(?P<name>\w+) is (?P<height>\d+) cm tall$",
                Human(),
                label="height",
            ),
        ],
        name="humans",
    )
