"""Rule-set descriptors.

Validates rule-set documents (as loaded from JSON) and turns them into
Rules bound to caller-supplied records.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from refill.errors import ConfigurationError
from refill.rule import FLAG_NAMES, MatchMode, Rule


class RuleConfig(BaseModel):
    """Descriptor for a single rule.

    Attributes:
        label: Rule label carried through to results.
        pattern: Regular expression text.
        record: Key into the records mapping passed to ``build_rules``.
        flags: Names of ``re`` flags, e.g. ``["IGNORECASE"]``.
        mode: How the pattern is applied to the input.
    """

    label: str = ""
    pattern: str
    record: str
    flags: list[str] = Field(default_factory=list)
    mode: MatchMode = MatchMode.FULL

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: list[str]) -> list[str]:
        names = [name.upper() for name in value]
        unknown = [name for name in names if name not in FLAG_NAMES]
        if unknown:
            raise ValueError(f"unknown regex flag(s): {', '.join(unknown)}")
        return names

    def regex_flags(self) -> int:
        """Combine the named flags into ``re`` flag bits."""
        bits = 0
        for name in self.flags:
            bits |= re.RegexFlag[name]
        return bits


class RuleSetConfig(BaseModel):
    """Descriptor for an ordered rule set."""

    name: str = "default"
    rules: list[RuleConfig] = Field(default_factory=list)


def parse_config(data: Mapping[str, Any]) -> RuleSetConfig:
    """Validate a raw rule-set document.

    Args:
        data: Parsed JSON document.

    Returns:
        Validated RuleSetConfig.

    Raises:
        ConfigurationError: If the document is malformed.
    """
    try:
        return RuleSetConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid rule set: {exc}") from exc


def build_rules(config: RuleSetConfig, records: Mapping[str, Any]) -> list[Rule]:
    """Create Rules from a validated descriptor.

    A record instance in *records* is shared by every rule naming its key.
    A record class is instantiated with no arguments once per rule.

    Args:
        config: Validated rule-set descriptor.
        records: Mapping of record key to record instance or class.

    Returns:
        Uncompiled rules in descriptor order.

    Raises:
        ConfigurationError: If a rule names an unknown record key or the
            mapped record is not a dataclass or pydantic model.
    """
    rules: list[Rule] = []
    for index, rc in enumerate(config.rules):
        if rc.record not in records:
            raise ConfigurationError(
                f"rule #{index} ({rc.label!r}) references unknown record {rc.record!r}"
            )
        target = records[rc.record]
        record = target() if isinstance(target, type) else target
        try:
            rule = Rule(
                rc.pattern,
                record,
                label=rc.label,
                flags=rc.regex_flags(),
                mode=rc.mode,
            )
        except TypeError as exc:
            raise ConfigurationError(f"rule #{index} ({rc.label!r}): {exc}") from exc
        rules.append(rule)
    return rules
