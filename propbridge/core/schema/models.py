from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Optional, Tuple

from propbridge.core.properties.models import MatchingRule, OverlayKind, OverlayPosition


@dataclass(frozen=True)
class IntWidth:
    bits: int
    signed: bool = True


@dataclass(frozen=True)
class FloatWidth:
    bits: int


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


class ShapeKind(str, Enum):
    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DURATION = "duration"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OPTIONAL = "optional"
    DYNAMIC = "dynamic"
    RECORD = "record"
    ENTITY = "entity"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class Shape:
    """Tagged union describing what a field holds.

    ``element`` is the item shape of a SEQUENCE and the inner shape of an
    OPTIONAL; ``key``/``value`` belong to MAPPING; ``record`` to RECORD.
    """

    kind: ShapeKind
    bits: int = 0
    signed: bool = True
    element: Optional["Shape"] = None
    key: Optional["Shape"] = None
    value: Optional["Shape"] = None
    record: Optional[type] = None
    label: str = ""

    @property
    def is_record(self) -> bool:
        if self.kind == ShapeKind.RECORD:
            return True
        return self.kind == ShapeKind.OPTIONAL and self.element is not None and self.element.is_record

    @property
    def record_type(self) -> Optional[type]:
        if self.kind == ShapeKind.RECORD:
            return self.record
        if self.kind == ShapeKind.OPTIONAL and self.element is not None:
            return self.element.record_type
        return None

    @property
    def is_container(self) -> bool:
        if self.kind in (ShapeKind.SEQUENCE, ShapeKind.MAPPING):
            return True
        return self.kind == ShapeKind.OPTIONAL and self.element is not None and self.element.is_container

    def describe(self) -> str:
        k = self.kind
        if k == ShapeKind.INTEGER:
            return f"{'int' if self.signed else 'uint'}{self.bits}"
        if k == ShapeKind.FLOAT:
            return f"float{self.bits}"
        if k == ShapeKind.SEQUENCE:
            return f"list[{self.element.describe()}]"
        if k == ShapeKind.MAPPING:
            return f"dict[{self.key.describe()}, {self.value.describe()}]"
        if k == ShapeKind.OPTIONAL:
            return f"optional[{self.element.describe()}]"
        if k == ShapeKind.RECORD:
            return self.record.__name__
        if k == ShapeKind.UNSUPPORTED:
            return f"unsupported[{self.label}]"
        return k.value


TEXT = Shape(ShapeKind.TEXT)
BOOLEAN = Shape(ShapeKind.BOOLEAN)
DURATION = Shape(ShapeKind.DURATION)
DYNAMIC = Shape(ShapeKind.DYNAMIC)
ENTITY = Shape(ShapeKind.ENTITY)


def integer(bits: int = 64, signed: bool = True) -> Shape:
    return Shape(ShapeKind.INTEGER, bits=bits, signed=signed)


def floating(bits: int = 64) -> Shape:
    return Shape(ShapeKind.FLOAT, bits=bits)


def sequence(element: Shape) -> Shape:
    return Shape(ShapeKind.SEQUENCE, element=element)


def mapping(key: Shape, value: Shape) -> Shape:
    return Shape(ShapeKind.MAPPING, key=key, value=value)


def optional(inner: Shape) -> Shape:
    return Shape(ShapeKind.OPTIONAL, element=inner)


def record(tp: type) -> Shape:
    return Shape(ShapeKind.RECORD, record=tp)


def unsupported(label: str) -> Shape:
    return Shape(ShapeKind.UNSUPPORTED, label=label)


@dataclass(frozen=True)
class OverlaySpec:
    position: OverlayPosition
    kind: OverlayKind = OverlayKind.TEXT


@dataclass(frozen=True)
class FieldSpec:
    name: str
    shape: Shape
    exposed: bool = False
    display_name: str = ""
    alias: str = ""
    matching_rule: MatchingRule = MatchingRule.LOOSE
    overlay: Optional[OverlaySpec] = None
    hidden: bool = False
    readonly: bool = False
    sample: Optional[str] = None
    base: bool = False


@dataclass(frozen=True)
class RecordSchema:
    type: type
    fields: Tuple[FieldSpec, ...] = ()
    warnings: Tuple[str, ...] = ()
    frozen: bool = False
    constructible: bool = True
    property_names: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def type_name(self) -> str:
        return self.type.__name__

    @property
    def base_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.base)

    @property
    def own_fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if not f.base)

    def new_instance(self):
        return self.type()
