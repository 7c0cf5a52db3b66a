from __future__ import annotations

import math
import re
import struct
from datetime import timedelta
from typing import Any, Optional

from propbridge.core.config import Settings, get_settings
from propbridge.core.errors import ParseError, RangeError, UnsupportedShapeError
from propbridge.core.schema.models import Shape, ShapeKind
from propbridge.core.schema.registry import SchemaRegistry, get_registry

from .duration import format_duration, parse_duration

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


def _parse_bool(raw: str, shape: Shape) -> bool:
    if raw == "":
        # A present-but-empty flag means "set".
        return True
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ParseError(f"invalid boolean {raw!r}", raw=raw, shape=shape)


def _parse_int(raw: str, shape: Shape) -> int:
    pattern = _SIGNED_RE if shape.signed else _UNSIGNED_RE
    if not pattern.fullmatch(raw):
        raise ParseError(f"invalid {shape.describe()} {raw!r}", raw=raw, shape=shape)
    value = int(raw, 10)
    bits = shape.bits or 64
    if shape.signed:
        lo, hi = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        lo, hi = 0, (1 << bits) - 1
    if not lo <= value <= hi:
        raise RangeError(f"{raw!r} out of range for {shape.describe()}", raw=raw, shape=shape)
    return value


def _to_float32(value: float) -> float:
    """Nearest 32-bit float, or a signed inf when ``value`` is beyond its range."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _format_float32(value: float) -> str:
    # Shortest text that reads back as the same 32-bit float; 9 digits always do.
    narrow = _to_float32(value)
    if not math.isfinite(narrow):
        return repr(narrow)
    for digits in range(1, 10):
        text = f"{narrow:.{digits}g}"
        if _to_float32(float(text)) == narrow:
            return text
    return repr(narrow)


def _parse_float(raw: str, shape: Shape) -> float:
    if not _FLOAT_RE.fullmatch(raw):
        raise ParseError(f"invalid {shape.describe()} {raw!r}", raw=raw, shape=shape)
    value = float(raw)
    explicit_inf = "inf" in raw.lower()
    if math.isinf(value) and not explicit_inf:
        raise RangeError(f"{raw!r} out of range for {shape.describe()}", raw=raw, shape=shape)
    if shape.bits == 32 and math.isfinite(value):
        value = _to_float32(value)
        if math.isinf(value):
            raise RangeError(f"{raw!r} out of range for {shape.describe()}", raw=raw, shape=shape)
    return value


def _unsupported(raw: str, shape: Shape, current: Any, settings: Settings) -> Any:
    if settings.unsupported_shapes == "ignore":
        return current
    raise UnsupportedShapeError(f"cannot coerce a string into {shape.describe()}", raw=raw, shape=shape)


def coerce(
    raw: str,
    shape: Shape,
    current: Any = None,
    *,
    registry: Optional[SchemaRegistry] = None,
    settings: Optional[Settings] = None,
) -> Any:
    """Convert one raw wire string into a value of ``shape``.

    ``current`` is the value the target field holds now. Sequences append
    one element to it and mappings insert one entry into it, so a repeated
    key is handled by calling this once per occurrence and feeding the
    result back in. Returns the new field value.
    """
    settings = settings or get_settings()
    kind = shape.kind

    if kind == ShapeKind.DURATION:
        return parse_duration(raw)

    if kind == ShapeKind.TEXT:
        return raw

    if kind == ShapeKind.BOOLEAN:
        return _parse_bool(raw, shape)

    if kind == ShapeKind.INTEGER:
        return _parse_int(raw, shape)

    if kind == ShapeKind.FLOAT:
        return _parse_float(raw, shape)

    if kind == ShapeKind.SEQUENCE:
        item = coerce(raw, shape.element, None, registry=registry, settings=settings)
        if current is None:
            current = []
        current.append(item)
        return current

    if kind == ShapeKind.MAPPING:
        key_raw, _, value_raw = raw.partition(":")
        key = coerce(key_raw, shape.key, None, registry=registry, settings=settings)
        value = coerce(value_raw, shape.value, None, registry=registry, settings=settings)
        if current is None:
            current = {}
        current[key] = value
        return current

    if kind == ShapeKind.OPTIONAL:
        return coerce(raw, shape.element, current, registry=registry, settings=settings)

    if kind == ShapeKind.DYNAMIC:
        if current is None:
            return None
        registry = registry or get_registry()
        return coerce(raw, registry.shape_for(type(current)), current, registry=registry, settings=settings)

    # RECORD, ENTITY, UNSUPPORTED
    return _unsupported(raw, shape, current, settings)


def render(value: Any, shape: Shape) -> str:
    """String form of a leaf value, readable back by coerce()."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, float):
        if shape.kind == ShapeKind.FLOAT and shape.bits == 32:
            return _format_float32(value)
        return repr(value)
    return str(value)


def render_occurrences(value: Any, shape: Shape) -> list[str]:
    """Raw occurrences of a sequence or mapping value, one per element."""
    kind = shape.kind
    if kind == ShapeKind.OPTIONAL:
        return render_occurrences(value, shape.element)
    if kind == ShapeKind.MAPPING:
        return [f"{render(k, shape.key)}:{render(v, shape.value)}" for k, v in value.items()]
    return [render(v, shape.element) for v in value]
