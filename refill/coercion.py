"""String-to-value coercion for captured text.

One parser per supported field kind. Parsers accept only the exact
textual forms listed below and raise ``ValueError`` for anything else;
surrounding whitespace and digit separators are rejected.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from typing import Any

import numpy as np

from refill.fields import FieldKind, FieldSpec

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_HEX_FLOAT_RE = re.compile(
    r"[+-]?0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)p[+-]?[0-9]+",
    re.IGNORECASE,
)

_TRUE_LITERALS = frozenset({"1", "t", "true"})
_FALSE_LITERALS = frozenset({"0", "f", "false"})


def parse_int(text: str) -> int:
    """Parse a base-10 signed integer.

    Args:
        text: Captured text, e.g. ``"-42"``.

    Returns:
        The integer value.

    Raises:
        ValueError: If the text is not an optionally signed digit run.
    """
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer literal: {text!r}")
    return int(text)


def parse_float64(text: str) -> float:
    """Parse a 64-bit floating point number.

    Args:
        text: Captured text, e.g. ``"3.4"``, ``"1e-3"``, ``"0x1p-3"`` or
            ``"inf"``. Hex literals need a ``p`` exponent.

    Returns:
        The float value.

    Raises:
        ValueError: If the text is malformed or overflows a double.
    """
    if _HEX_FLOAT_RE.fullmatch(text):
        try:
            return float.fromhex(text)
        except OverflowError as exc:
            raise ValueError(f"float literal out of range: {text!r}") from exc
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid float literal: {text!r}")
    value = float(text)
    if math.isinf(value) and not _is_infinity_literal(text):
        raise ValueError(f"float literal out of range: {text!r}")
    return value


def parse_float32(text: str) -> np.float32:
    """Parse a 32-bit floating point number.

    Args:
        text: Captured text.

    Returns:
        The value as ``numpy.float32``.

    Raises:
        ValueError: If the text is malformed or overflows a single.
    """
    wide = parse_float64(text)
    with np.errstate(over="ignore"):
        value = np.float32(wide)
    if np.isinf(value) and not math.isinf(wide):
        raise ValueError(f"float32 literal out of range: {text!r}")
    return value


def parse_bool(text: str) -> bool:
    """Parse a boolean literal.

    Accepts ``1``, ``t``, ``true``, ``0``, ``f`` and ``false`` in any case.

    Raises:
        ValueError: For any other text.
    """
    lowered = text.lower()
    if lowered in _TRUE_LITERALS:
        return True
    if lowered in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean literal: {text!r}")


def _is_infinity_literal(text: str) -> bool:
    return text.lstrip("+-").lower() in ("inf", "infinity")


_PARSERS: dict[FieldKind, Callable[[str], Any]] = {
    FieldKind.TEXT: str,
    FieldKind.INTEGER: parse_int,
    FieldKind.FLOAT64: parse_float64,
    FieldKind.FLOAT32: parse_float32,
    FieldKind.BOOLEAN: parse_bool,
}

_ZERO_VALUES: dict[FieldKind, Any] = {
    FieldKind.TEXT: "",
    FieldKind.INTEGER: 0,
    FieldKind.FLOAT64: 0.0,
    FieldKind.FLOAT32: np.float32(0.0),
    FieldKind.BOOLEAN: False,
}


def coerce(spec: FieldSpec, text: str) -> Any:
    """Convert non-empty captured text to the value for a field.

    Optional fields are coerced as their wrapped kind; the result is the
    present value.

    Args:
        spec: Resolved field descriptor.
        text: Non-empty captured text.

    Returns:
        The typed value.

    Raises:
        ValueError: If the text cannot be parsed as the field's kind.
        KeyError: If the field kind is unsupported.
    """
    return _PARSERS[spec.kind](text)


def zero_value(spec: FieldSpec) -> Any:
    """Return the value a field is reset to when its group captured nothing."""
    if spec.optional:
        return None
    return _ZERO_VALUES[spec.kind]
