"""A single pattern-to-record rule.

A rule owns one regular expression and one record instance. Compiling
the rule binds the expression's named capture groups to the record's
fields; a successful match then writes the captured values into the
record in place.
"""

from __future__ import annotations

import functools
import logging
import operator
import re
from enum import Enum
from typing import Any

from pydantic import ValidationError

from refill.coercion import coerce, zero_value
from refill.errors import CompilationError, FieldFillingError, RuleNotCompiledError
from refill.fields import FieldSpec, describe_fields, is_frozen, is_record

logger = logging.getLogger(__name__)

# Regex flags that can be named in rule descriptors
FLAG_NAMES = (
    "ASCII",
    "IGNORECASE",
    "MULTILINE",
    "DOTALL",
    "VERBOSE",
    "UNICODE",
)

_NAMED_FLAG_BITS = int(
    functools.reduce(operator.or_, (re.RegexFlag[name] for name in FLAG_NAMES))
)


class MatchMode(str, Enum):
    """How a rule's pattern is applied to the input.

    Attributes:
        FULL: The pattern must match the entire input.
        PREFIX: The pattern must match at the start of the input.
        CONTAINS: The pattern may match anywhere in the input.
    """

    FULL = "full"
    PREFIX = "prefix"
    CONTAINS = "contains"


class Rule:
    """Binds a regular expression to a record it fills on match.

    The record is a shared handle: the same instance may back several
    rules and is overwritten on every successful match.

    Args:
        pattern: Regular expression with optionally named groups.
        record: Dataclass or pydantic model instance to fill.
        label: Identifies the rule in results and errors.
        flags: ``re`` flags used when compiling the pattern.
        mode: How the pattern is applied to the input.

    Raises:
        TypeError: If *record* is not a mutable dataclass or pydantic model
            instance.
        ValueError: If *flags* holds bits outside ``FLAG_NAMES``.

    Example::

        rule = Rule(r"(?P<name>\\w+) is (?P<age>\\d+)", Person(), label="age")
        rule.compile()
        person = rule.try_match("John is 42")
    """

    def __init__(
        self,
        pattern: str,
        record: Any,
        label: str = "",
        flags: int | re.RegexFlag = 0,
        mode: MatchMode = MatchMode.FULL,
    ) -> None:
        if not is_record(record):
            raise TypeError(
                f"rule {label!r}: record must be a dataclass or pydantic model "
                f"instance, got {type(record).__name__}"
            )
        if is_frozen(record):
            raise TypeError(
                f"rule {label!r}: record must be mutable, got frozen "
                f"{type(record).__name__}"
            )
        unknown = int(flags) & ~_NAMED_FLAG_BITS
        if unknown:
            raise ValueError(
                f"rule {label!r}: unsupported regex flag bits {unknown:#x}; "
                f"allowed flags are {', '.join(FLAG_NAMES)}"
            )
        self._pattern = pattern
        self._record = record
        self._label = label
        self._flags = flags
        self._mode = MatchMode(mode)
        self._compiled: re.Pattern[str] | None = None
        self._bindings: dict[int, FieldSpec] | None = None

    @property
    def label(self) -> str:
        """Caller-supplied label."""
        return self._label

    @property
    def pattern(self) -> str:
        """Pattern source text."""
        return self._pattern

    @property
    def record(self) -> Any:
        """The record filled by this rule."""
        return self._record

    @property
    def flags(self) -> int:
        """Regex flag bits used at compile time."""
        return int(self._flags)

    @property
    def mode(self) -> MatchMode:
        """How the pattern is applied to the input."""
        return self._mode

    @property
    def is_compiled(self) -> bool:
        """Whether the pattern and binding map are ready."""
        return self._compiled is not None

    @property
    def bindings(self) -> dict[int, FieldSpec]:
        """Copy of the binding map: capture group index to field.

        Raises:
            RuleNotCompiledError: If the rule has not been compiled.
        """
        if self._bindings is None:
            raise RuleNotCompiledError(f"rule {self._label!r} is not compiled")
        return dict(self._bindings)

    def compile(self) -> None:
        """Compile the pattern and bind its named groups to record fields.

        Recompiling replaces the previous pattern and binding map.

        Raises:
            CompilationError: If the pattern is not a valid expression.
        """
        try:
            compiled = re.compile(self._pattern, self._flags)
        except (re.error, ValueError) as exc:
            self._compiled = None
            self._bindings = None
            raise CompilationError(self._label, exc) from exc

        bindings = self._bind(compiled)
        self._compiled = compiled
        self._bindings = bindings
        logger.debug(
            "Compiled rule %r with %d binding(s)", self._label, len(bindings)
        )

    def _bind(self, compiled: re.Pattern[str]) -> dict[int, FieldSpec]:
        """Intersect the pattern's named groups with the record's fields.

        Later fields win when two fields share a capture name.
        """
        group_index = compiled.groupindex
        bindings: dict[int, FieldSpec] = {}
        for spec in describe_fields(self._record):
            group = group_index.get(spec.capture_name)
            if group is not None:
                bindings[group] = spec
        return dict(sorted(bindings.items()))

    def try_match(self, text: str) -> Any | None:
        """Match *text* and fill the record on success.

        Groups that did not participate or captured an empty string reset
        their field to its zero value (``None`` for optional fields).
        Fields of unsupported types are never written.

        Args:
            text: Input string.

        Returns:
            The filled record, or None if the pattern does not match.

        Raises:
            RuleNotCompiledError: If the rule has not been compiled.
            FieldFillingError: If a captured value cannot be coerced or the
                record rejects the assignment. Fields filled before the failing
                one keep their new values.
        """
        if self._compiled is None or self._bindings is None:
            raise RuleNotCompiledError(f"rule {self._label!r} is not compiled")

        match = self._apply(self._compiled, text)
        if match is None:
            return None

        self._fill(match, self._bindings)
        return self._record

    def _apply(self, compiled: re.Pattern[str], text: str) -> re.Match[str] | None:
        if self._mode is MatchMode.FULL:
            return compiled.fullmatch(text)
        if self._mode is MatchMode.PREFIX:
            return compiled.match(text)
        return compiled.search(text)

    def _fill(self, match: re.Match[str], bindings: dict[int, FieldSpec]) -> None:
        for group, spec in bindings.items():
            if not spec.supported:
                continue

            raw = match.group(group)
            try:
                value = coerce(spec, raw) if raw else zero_value(spec)
                setattr(self._record, spec.name, value)
            except (ValueError, ValidationError) as exc:
                raise FieldFillingError(spec.name, exc, label=self._label) from exc

    def to_dict(self) -> dict[str, Any]:
        """Serialize the rule descriptor.

        The record is written as its class name.
        """
        return {
            "label": self._label,
            "pattern": self._pattern,
            "record": type(self._record).__name__,
            "flags": [name for name in FLAG_NAMES if re.RegexFlag[name] & self._flags],
            "mode": self._mode.value,
        }

    def __repr__(self) -> str:
        return (
            f"Rule(label={self._label!r}, pattern={self._pattern!r}, "
            f"record={type(self._record).__name__})"
        )
