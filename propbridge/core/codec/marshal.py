from __future__ import annotations

import logging
from typing import Any, Optional, Set

from propbridge.core.config import Settings, get_settings
from propbridge.core.errors import NamespaceCollisionError
from propbridge.core.observability import metrics
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import MatchingRule, Property
from propbridge.core.properties.namespace import resolve
from propbridge.core.schema.models import FieldSpec, RecordSchema, ShapeKind
from propbridge.core.schema.registry import SchemaRegistry, get_registry

from .coercion import render, render_occurrences
from .merge import merge_base

_log = logging.getLogger("propbridge.marshal")


def marshal(
    record: Any,
    *,
    registry: Optional[SchemaRegistry] = None,
    settings: Optional[Settings] = None,
) -> Entity:
    """Flatten a native record into a fresh Entity.

    Non-record values come back as an Entity with a single opaque property;
    an Entity comes back as a snapshot including its display properties.
    """
    registry = registry or get_registry()
    settings = settings or get_settings()
    metrics.inc_marshal()

    if isinstance(record, Entity):
        return record.snapshot()

    tp = type(record)
    if not registry.is_record(tp):
        entity = Entity(type=tp.__qualname__, display_name=tp.__qualname__, weight=settings.default_weight)
        entity.add_property(
            Property(
                name=f"type#{tp.__module__}.{tp.__qualname__}",
                display_name=f"Python type: {tp.__qualname__}",
                matching_rule=MatchingRule.LOOSE,
                value=str(record),
            )
        )
        return entity

    schema = registry.describe(tp)
    entity = _marshal_record(record, schema, registry, settings)
    _log.debug("marshaled %s: %d properties, %d overlays", schema.type_name, len(entity.properties), len(entity.overlays))
    return entity


def _marshal_record(record: Any, schema: RecordSchema, registry: SchemaRegistry, settings: Settings) -> Entity:
    entity = Entity(type=schema.type_name, display_name=schema.type_name, weight=settings.default_weight)
    with entity.lock:
        _RecordMarshaler(entity, registry, settings).walk("", record, schema, None)
    return entity


class _RecordMarshaler:
    def __init__(self, entity: Entity, registry: SchemaRegistry, settings: Settings):
        self.entity = entity
        self.registry = registry
        self.settings = settings
        # Names written by own fields during this call, for collision checks.
        self._own: Set[str] = set()

    def walk(self, namespace: str, value: Any, schema: RecordSchema, field_name: Optional[str]) -> None:
        # Base entities first, so the record's own fields can override them.
        for spec in schema.base_fields:
            self._merge_base(getattr(value, spec.name))

        self.entity.add_group(resolve(namespace, schema.type_name), schema.type_name)

        if field_name is not None:
            namespace = resolve(namespace, field_name)

        for spec in schema.own_fields:
            v = getattr(value, spec.name)

            if spec.shape.is_record:
                if v is None:
                    continue
                self.walk(namespace, v, self.registry.describe(type(v)), spec.name)
                continue

            if not spec.exposed:
                continue

            prop = self._build(namespace, spec, v)
            if prop is None:
                continue
            self._add(prop)

            if spec.overlay is not None:
                self.entity.add_overlay(prop.name, spec.overlay.position, spec.overlay.kind)

    def _merge_base(self, base: Any) -> None:
        if base is None:
            return
        if isinstance(base, Entity):
            folded = base.snapshot()
        else:
            folded = _marshal_record(base, self.registry.describe(type(base)), self.registry, self.settings)
        merge_base(folded, self.entity, dedupe_labels=self.settings.dedupe_base_labels)

    def _build(self, namespace: str, spec: FieldSpec, v: Any) -> Optional[Property]:
        if v is None:
            return None

        shape = spec.shape
        if shape.kind == ShapeKind.DYNAMIC:
            # Any: render by the runtime type.
            shape = self.registry.shape_for(type(v))
        values = []
        if shape.is_container:
            values = render_occurrences(v, shape)
            if not values:
                return None
            text = ", ".join(values)
        elif shape.kind == ShapeKind.OPTIONAL:
            text = render(v, shape.element)
        else:
            text = render(v, shape)

        return Property(
            name=resolve(namespace, spec.name),
            display_name=spec.display_name,
            alias=spec.alias,
            matching_rule=spec.matching_rule,
            value=text,
            values=values,
            hidden=spec.hidden,
            readonly=spec.readonly,
            sample=spec.sample,
        )

    def _add(self, prop: Property) -> None:
        if prop.name in self._own:
            mode = self.settings.namespace_collisions
            if mode == "error":
                raise NamespaceCollisionError(prop.name)
            if mode == "warn":
                _log.warning("property %r written twice in %s, keeping the last value", prop.name, self.entity.type)
                metrics.inc_collision()
        self._own.add(prop.name)
        self.entity.add_property(prop)
