from __future__ import annotations

import collections.abc
import dataclasses
import logging
import threading
import types
import typing
from datetime import timedelta
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from propbridge.core.errors import CyclicSchemaError, SchemaError
from propbridge.core.observability import metrics
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import MatchingRule, OverlayKind, OverlayPosition
from propbridge.core.properties.namespace import resolve

from . import fields as tags
from .models import (
    BOOLEAN,
    DURATION,
    DYNAMIC,
    ENTITY,
    TEXT,
    FieldSpec,
    FloatWidth,
    IntWidth,
    OverlaySpec,
    RecordSchema,
    Shape,
    ShapeKind,
    floating,
    integer,
    mapping,
    optional,
    record,
    sequence,
    unsupported,
)

_log = logging.getLogger("propbridge.schema")

_OVERLAY_POSITIONS = {p.value: p for p in OverlayPosition}
_OVERLAY_KINDS = {
    "text": OverlayKind.TEXT,
    "image": OverlayKind.IMAGE,
    "colour": OverlayKind.COLOUR,
    "color": OverlayKind.COLOUR,
}

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def parse_overlay(tag: Any) -> Tuple[Optional[OverlaySpec], List[str]]:
    """Parse "<position>[,<kind>]".

    An invalid position drops the overlay; a missing or invalid kind falls
    back to text. Returns the spec (or None) and what was discarded.
    """
    infos = [p.strip() for p in str(tag if tag is not None else "").split(",")]
    if infos == [""]:
        return None, ["empty overlay annotation ignored"]
    if len(infos) > 2:
        return None, [f"overlay {tag!r} dropped: expected '<position>[,<kind>]'"]

    position = _OVERLAY_POSITIONS.get(infos[0].upper())
    if position is None:
        return None, [f"overlay {tag!r} dropped: invalid position {infos[0]!r}"]

    if len(infos) == 1 or not infos[1]:
        return OverlaySpec(position=position), []

    kind = _OVERLAY_KINDS.get(infos[1].lower())
    if kind is None:
        return OverlaySpec(position=position), [f"overlay {tag!r}: invalid kind {infos[1]!r}, using text"]
    return OverlaySpec(position=position, kind=kind), []


def _has_uncoercible(shape: Shape) -> bool:
    if shape.kind in (ShapeKind.UNSUPPORTED, ShapeKind.RECORD, ShapeKind.ENTITY):
        return True
    return any(_has_uncoercible(s) for s in (shape.element, shape.key, shape.value) if s is not None)


class SchemaRegistry:
    """Builds and caches one RecordSchema per dataclass type.

    Schemas are built once, nested record types first. A record type that
    reaches itself through nested or base fields is rejected with
    CyclicSchemaError, so marshal/unmarshal walks always terminate.
    """

    def __init__(self):
        self._schemas: Dict[type, RecordSchema] = {}
        self._lock = threading.RLock()

    def is_record(self, tp: Any) -> bool:
        return isinstance(tp, type) and dataclasses.is_dataclass(tp) and not issubclass(tp, Entity)

    def describe(self, tp: type) -> RecordSchema:
        with self._lock:
            return self._describe(tp, [])

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()

    def warnings(self) -> Dict[str, List[str]]:
        with self._lock:
            return {tp.__qualname__: list(s.warnings) for tp, s in self._schemas.items() if s.warnings}

    def shape_for(self, annotation: Any) -> Shape:
        if annotation is Any or annotation is object:
            return DYNAMIC

        origin = get_origin(annotation)

        if origin is Annotated:
            inner_type, *extras = get_args(annotation)
            inner = self.shape_for(inner_type)
            for extra in extras:
                if isinstance(extra, IntWidth) and inner.kind == ShapeKind.INTEGER:
                    return integer(extra.bits, extra.signed)
                if isinstance(extra, FloatWidth) and inner.kind == ShapeKind.FLOAT:
                    return floating(extra.bits)
            return inner

        if origin is Union or origin is types.UnionType:
            args = get_args(annotation)
            non_none = [a for a in args if a is not type(None)]
            if len(non_none) == 1 and len(args) == 2:
                return optional(self.shape_for(non_none[0]))
            return unsupported(repr(annotation))

        if origin in _SEQUENCE_ORIGINS:
            args = get_args(annotation)
            return sequence(self.shape_for(args[0]) if args else TEXT)

        if origin in _MAPPING_ORIGINS:
            args = get_args(annotation)
            if len(args) == 2:
                return mapping(self.shape_for(args[0]), self.shape_for(args[1]))
            return mapping(TEXT, TEXT)

        if annotation is list:
            return sequence(TEXT)
        if annotation is dict:
            return mapping(TEXT, TEXT)
        if annotation is bool:
            return BOOLEAN
        if annotation is int:
            return integer()
        if annotation is float:
            return floating()
        if annotation is str:
            return TEXT
        if annotation is timedelta:
            return DURATION
        if isinstance(annotation, type) and issubclass(annotation, Entity):
            return ENTITY
        if self.is_record(annotation):
            return record(annotation)

        return unsupported(getattr(annotation, "__name__", repr(annotation)))

    # -- internals ------------------------------------------------------

    def _describe(self, tp: type, stack: List[type]) -> RecordSchema:
        cached = self._schemas.get(tp)
        if cached is not None:
            return cached

        if not self.is_record(tp):
            raise SchemaError(f"{tp!r} is not a dataclass record")
        if tp in stack:
            raise CyclicSchemaError([t.__name__ for t in stack] + [tp.__name__])
        stack = stack + [tp]

        try:
            hints = typing.get_type_hints(tp, include_extras=True)
        except (NameError, TypeError) as exc:
            raise SchemaError(f"Cannot resolve annotations of {tp.__name__}: {exc}") from exc

        warnings: List[str] = []
        specs: List[FieldSpec] = []
        for f in dataclasses.fields(tp):
            if f.name.startswith("_"):
                continue
            shape = self.shape_for(hints.get(f.name, Any))
            spec = self._field_spec(f, shape, warnings)
            nested = spec.shape.record_type
            if nested is not None:
                self._describe(nested, stack)
            specs.append(spec)

        constructible = all(
            f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
            for f in dataclasses.fields(tp)
            if f.init
        )
        names = self._property_names(specs, warnings)

        schema = RecordSchema(
            type=tp,
            fields=tuple(specs),
            warnings=tuple(warnings),
            frozen=bool(tp.__dataclass_params__.frozen),
            constructible=constructible,
            property_names=tuple(names),
        )
        for w in warnings:
            _log.warning("%s: %s", tp.__qualname__, w)
        metrics.inc_schema_warnings(len(warnings))

        self._schemas[tp] = schema
        return schema

    def _field_spec(self, f: dataclasses.Field, shape: Shape, warnings: List[str]) -> FieldSpec:
        md = f.metadata or {}

        base = tags.BASE in md
        carrier = shape.is_record or shape.kind == ShapeKind.ENTITY or (
            shape.kind == ShapeKind.OPTIONAL and shape.element is not None and shape.element.kind == ShapeKind.ENTITY
        )
        if base and not carrier:
            warnings.append(f"field {f.name!r}: base marker on a {shape.describe()} field ignored")
            base = False

        exposed = tags.DISPLAY in md
        if exposed and (base or shape.is_record):
            warnings.append(f"field {f.name!r}: display metadata on a record field ignored")
            exposed = False
        if exposed and _has_uncoercible(shape):
            warnings.append(f"field {f.name!r}: {shape.describe()} values cannot be read back from properties")

        strict_tag = md.get(tags.STRICT)
        matching_rule = MatchingRule.STRICT if strict_tag not in (None, "", False) else MatchingRule.LOOSE

        overlay = None
        if tags.OVERLAY in md:
            overlay, problems = parse_overlay(md[tags.OVERLAY])
            warnings.extend(f"field {f.name!r}: {p}" for p in problems)
            if overlay is not None and not exposed:
                warnings.append(f"field {f.name!r}: overlay on a field that is not exposed ignored")
                overlay = None

        sample = md.get(tags.SAMPLE)
        return FieldSpec(
            name=f.name,
            shape=shape,
            exposed=exposed,
            display_name=str(md.get(tags.DISPLAY) or "") or f.name,
            alias=str(md.get(tags.ALIAS) or "") or f.name.lower(),
            matching_rule=matching_rule,
            overlay=overlay,
            hidden=bool(md.get(tags.HIDDEN, False)),
            readonly=bool(md.get(tags.READONLY, False)),
            sample=str(sample) if sample is not None else None,
            base=base,
        )

    def _property_names(self, specs: List[FieldSpec], warnings: List[str]) -> List[str]:
        # Names are relative to the record's own namespace. Base fields are
        # left out: overriding inherited names is intended.
        seen: Dict[str, str] = {}
        for spec in specs:
            if spec.base:
                continue
            nested = spec.shape.record_type
            if nested is not None:
                names = [resolve(spec.name, n) for n in self._schemas[nested].property_names]
            elif spec.exposed:
                names = [resolve("", spec.name)]
            else:
                continue
            for name in dict.fromkeys(names):
                other = seen.get(name)
                if other is not None and other != spec.name:
                    warnings.append(f"fields {other!r} and {spec.name!r} both resolve to property {name!r}")
                    continue
                seen[name] = spec.name
        return list(seen.keys())


_REGISTRY = SchemaRegistry()


def get_registry() -> SchemaRegistry:
    return _REGISTRY


def describe(tp: type) -> RecordSchema:
    return _REGISTRY.describe(tp)
