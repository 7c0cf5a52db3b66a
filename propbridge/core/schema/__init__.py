from .fields import base_entity, prop
from .models import (
    FieldSpec,
    Float32,
    Float64,
    FloatWidth,
    Int8,
    Int16,
    Int32,
    Int64,
    IntWidth,
    OverlaySpec,
    RecordSchema,
    Shape,
    ShapeKind,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .registry import SchemaRegistry, describe, get_registry, parse_overlay

__all__ = [
    "FieldSpec",
    "Float32",
    "Float64",
    "FloatWidth",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "IntWidth",
    "OverlaySpec",
    "RecordSchema",
    "SchemaRegistry",
    "Shape",
    "ShapeKind",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "base_entity",
    "describe",
    "get_registry",
    "parse_overlay",
    "prop",
]
