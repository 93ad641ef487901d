"""Record introspection.

Lists the fields of a record type in declaration order and resolves,
once per type, the capture group name that feeds each field and the
kind of value the field holds.

Records are dataclass instances or pydantic models. A field's capture
name defaults to its own name in lowercase and can be overridden::

    @dataclass
    class Reading:
        sensor: str = ""
        value: float = field(default=0.0, metadata=capture("v"))
        raw: str = field(default="", metadata=capture(SKIP))

    class Reading(BaseModel):
        value: float = Field(default=0.0, json_schema_extra=capture("v"))
"""

from __future__ import annotations

import dataclasses
import functools
import types
import typing
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Union

import numpy as np
from pydantic import BaseModel

# Metadata key holding a field's capture name override
CAPTURE_KEY = "refill"

# Override value that excludes a field from binding
SKIP = "-"


def capture(name: str) -> dict[str, str]:
    """Build field metadata overriding the capture group name.

    Args:
        name: Capture group name, or ``SKIP`` to never fill the field.

    Returns:
        Mapping suitable for ``dataclasses.field(metadata=...)`` or
        pydantic ``Field(json_schema_extra=...)``.
    """
    return {CAPTURE_KEY: name}


class FieldKind(str, Enum):
    """Kind of value a record field holds."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT64 = "float64"
    FLOAT32 = "float32"
    BOOLEAN = "boolean"
    UNSUPPORTED = "unsupported"


# Matched by identity, so bool never resolves as int
_SCALAR_KINDS: tuple[tuple[Any, FieldKind], ...] = (
    (str, FieldKind.TEXT),
    (bool, FieldKind.BOOLEAN),
    (int, FieldKind.INTEGER),
    (float, FieldKind.FLOAT64),
    (np.float64, FieldKind.FLOAT64),
    (np.float32, FieldKind.FLOAT32),
)


@dataclass(frozen=True)
class FieldSpec:
    """Resolved descriptor for one bindable record field.

    Attributes:
        name: Attribute name on the record.
        capture_name: Name of the capture group that feeds this field.
        kind: Kind of value the field holds.
        optional: Whether the field also accepts ``None``.
    """

    name: str
    capture_name: str
    kind: FieldKind
    optional: bool = False

    @property
    def supported(self) -> bool:
        """Whether values of this field's kind can be coerced."""
        return self.kind is not FieldKind.UNSUPPORTED


def resolve_kind(annotation: Any) -> tuple[FieldKind, bool]:
    """Resolve a type annotation to a field kind.

    Args:
        annotation: Evaluated annotation, e.g. ``int`` or ``float | None``.

    Returns:
        Tuple of (kind, optional). Unions other than ``X | None`` and
        nested optionals resolve to ``FieldKind.UNSUPPORTED``.
    """
    origin = typing.get_origin(annotation)
    if origin is Annotated:
        return resolve_kind(typing.get_args(annotation)[0])

    if origin is Union or origin is types.UnionType:
        args = typing.get_args(annotation)
        members = [a for a in args if a is not type(None)]
        if len(args) == 2 and len(members) == 1:
            kind, nested = resolve_kind(members[0])
            if kind is not FieldKind.UNSUPPORTED and not nested:
                return kind, True
        return FieldKind.UNSUPPORTED, False

    for scalar, kind in _SCALAR_KINDS:
        if annotation is scalar:
            return kind, False
    return FieldKind.UNSUPPORTED, False


def is_record(obj: Any) -> bool:
    """Return True if *obj* is a dataclass instance or pydantic model instance."""
    if isinstance(obj, type):
        return False
    return dataclasses.is_dataclass(obj) or isinstance(obj, BaseModel)


def is_frozen(record: Any) -> bool:
    """Return True if assigning to *record*'s fields is forbidden."""
    if isinstance(record, BaseModel):
        return bool(type(record).model_config.get("frozen"))
    params = getattr(type(record), "__dataclass_params__", None)
    return bool(params is not None and params.frozen)


def describe_fields(record: Any) -> tuple[FieldSpec, ...]:
    """Describe the bindable fields of a record, in declaration order.

    Skipped fields are omitted. Results are cached per record type.

    Args:
        record: Dataclass instance or pydantic model instance.

    Returns:
        Tuple of field descriptors.

    Raises:
        TypeError: If *record* is neither a dataclass nor a pydantic model.
        NameError: If a dataclass annotation cannot be evaluated.
    """
    if not is_record(record):
        raise TypeError(
            f"record must be a dataclass or pydantic model instance, "
            f"got {type(record).__name__}"
        )
    return _describe_type(type(record))


@functools.lru_cache(maxsize=None)
def _describe_type(record_type: type) -> tuple[FieldSpec, ...]:
    if dataclasses.is_dataclass(record_type):
        entries = _dataclass_entries(record_type)
    else:
        entries = _pydantic_entries(record_type)

    specs: list[FieldSpec] = []
    for name, annotation, override in entries:
        if override == SKIP:
            continue
        kind, optional = resolve_kind(annotation)
        specs.append(
            FieldSpec(
                name=name,
                capture_name=override or name.lower(),
                kind=kind,
                optional=optional,
            )
        )
    return tuple(specs)


def _dataclass_entries(record_type: type) -> Iterator[tuple[str, Any, str | None]]:
    hints = typing.get_type_hints(record_type, include_extras=True)
    for f in dataclasses.fields(record_type):
        yield f.name, hints.get(f.name, f.type), f.metadata.get(CAPTURE_KEY)


def _pydantic_entries(record_type: type[BaseModel]) -> Iterator[tuple[str, Any, str | None]]:
    for name, info in record_type.model_fields.items():
        extra = info.json_schema_extra
        override = extra.get(CAPTURE_KEY) if isinstance(extra, dict) else None
        yield name, info.annotation, override
