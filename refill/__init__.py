"""Regex-driven record filling.

Matches input strings against an ordered list of regular expressions
and, on the first match, fills a dataclass or pydantic record from the
expression's named capture groups with typed value coercion.
"""

from refill.config import RuleConfig, RuleSetConfig
from refill.errors import (
    CompilationError,
    ConfigurationError,
    FieldFillingError,
    RefillError,
    RuleNotCompiledError,
)
from refill.fields import SKIP, FieldKind, FieldSpec, capture, describe_fields
from refill.rule import MatchMode, Rule
from refill.ruleset import RuleSet

__all__ = [
    "CompilationError",
    "ConfigurationError",
    "FieldFillingError",
    "FieldKind",
    "FieldSpec",
    "MatchMode",
    "RefillError",
    "Rule",
    "RuleConfig",
    "RuleNotCompiledError",
    "RuleSet",
    "RuleSetConfig",
    "SKIP",
    "capture",
    "describe_fields",
]
