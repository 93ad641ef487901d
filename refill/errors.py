"""Exception types raised by the matching engine.

Compilation and field-filling failures carry the rule label or field
name alongside the underlying error so callers can report which rule
or field went wrong.
"""

from __future__ import annotations


class RefillError(Exception):
    """Base class for all refill errors."""


class CompilationError(RefillError):
    """Raised when a rule's pattern is not a valid regular expression.

    Attributes:
        label: Label of the rule that failed to compile.
        error: The underlying ``re.error``.
    """

    def __init__(self, label: str, error: Exception) -> None:
        self.label = label
        self.error = error
        super().__init__(f"could not compile rule {label!r}: {error}")


class FieldFillingError(RefillError):
    """Raised when a captured value cannot be coerced to its field type.

    Attributes:
        field_name: Name of the record field being filled.
        error: The underlying parse error.
        label: Label of the rule whose match was being applied.
    """

    def __init__(self, field_name: str, error: Exception, label: str = "") -> None:
        self.field_name = field_name
        self.error = error
        self.label = label
        super().__init__(f"could not fill field {field_name}: {error}")


class RuleNotCompiledError(RefillError):
    """Raised when matching is attempted on a rule that was never compiled."""


class ConfigurationError(RefillError):
    """Raised when a rule-set descriptor cannot be turned into rules."""
