"""Ordered, first-match-wins collection of rules."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from refill.config import build_rules, parse_config
from refill.errors import CompilationError
from refill.rule import Rule

logger = logging.getLogger(__name__)


class RuleSet:
    """Ordered rules evaluated first-match-wins.

    The set compiles every rule on first use (or when ``compile`` is
    called). A failed compilation leaves the set uncompiled and the next
    ``match_string`` call tries again.

    Not thread-safe: records are filled in place and the first
    compilation is unguarded.

    Args:
        rules: Rules in evaluation order.
        name: Human-readable name for this rule set.

    Example::

        rs = RuleSet([
            Rule(r"(?P<name>\\w+) is (?P<age>\\d+)", Person(), label="age"),
            Rule(r"(?P<name>\\w+) is (?P<height>\\d+) cm tall", Person(), label="height"),
        ])
        rule = rs.match_string("John is 178 cm tall")
        if rule is not None:
            print(rule.label, rule.record)
    """

    def __init__(self, rules: Iterable[Rule] = (), name: str = "default") -> None:
        self._rules: list[Rule] = list(rules)
        self._name = name
        self._compiled = False

    @property
    def name(self) -> str:
        """Human-readable name for this rule set."""
        return self._name

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Rules in evaluation order."""
        return tuple(self._rules)

    @property
    def is_compiled(self) -> bool:
        """Whether every rule has been compiled successfully."""
        return self._compiled

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def add(self, rule: Rule) -> None:
        """Append a rule.

        On an already compiled set the rule is compiled before it is
        appended, so a failing rule is never added.

        Raises:
            CompilationError: If the set is compiled and the rule is not valid.
        """
        if self._compiled:
            rule.compile()
        self._rules.append(rule)

    def compile(self) -> None:
        """Compile every rule in order.

        Stops at the first failing rule. Rules before it stay compiled.

        Raises:
            CompilationError: For the first rule with an invalid pattern.
        """
        for rule in self._rules:
            try:
                rule.compile()
            except CompilationError as exc:
                logger.warning("Rule set %r failed to compile: %s", self._name, exc)
                raise
        self._compiled = True
        logger.debug("Compiled rule set %r (%d rules)", self._name, len(self._rules))

    def match_string(self, text: str) -> Rule | None:
        """Return the first rule matching *text*, with its record filled.

        Compiles the set first if needed.

        Args:
            text: Input string.

        Returns:
            The matching Rule (read ``rule.label`` and ``rule.record``), or
            None if no rule matches.

        Raises:
            CompilationError: If lazy compilation fails.
            FieldFillingError: If the matching rule cannot fill its record.
                Later rules are not tried.
        """
        if not self._compiled:
            self.compile()

        for rule in self._rules:
            if rule.try_match(text) is not None:
                logger.debug("Rule %r matched", rule.label)
                return rule

        logger.debug("No rule matched input of length %d", len(text))
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self._name,
            "rules": [r.to_dict() for r in self._rules],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], records: Mapping[str, Any]) -> RuleSet:
        """Deserialize from dictionary.

        Args:
            data: Rule-set document.
            records: Mapping of record key to record instance or class.

        Returns:
            Uncompiled RuleSet.

        Raises:
            ConfigurationError: If the document is invalid.
        """
        config = parse_config(data)
        return cls(build_rules(config, records), name=config.name)

    def save(self, path: Path) -> None:
        """Save rule set descriptor to JSON file.

        Args:
            path: Destination file path.
        """
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path, records: Mapping[str, Any]) -> RuleSet:
        """Load rule set from JSON file.

        Args:
            path: Source file path.
            records: Mapping of record key to record instance or class.

        Returns:
            Uncompiled RuleSet.

        Raises:
            ConfigurationError: If the document is invalid.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data, records)

    def __repr__(self) -> str:
        return f"RuleSet(name={self._name!r}, rules={len(self._rules)})"
