from __future__ import annotations

import contextlib
import logging
from typing import Any, Optional, Union

from propbridge.core.config import Settings, get_settings
from propbridge.core.errors import CoercionError, SchemaError
from propbridge.core.observability import metrics
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import PropertySet
from propbridge.core.properties.namespace import resolve
from propbridge.core.schema.models import FieldSpec, RecordSchema
from propbridge.core.schema.registry import SchemaRegistry, get_registry

from .coercion import coerce
from .merge import restore_display

_log = logging.getLogger("propbridge.unmarshal")


def unmarshal(
    source: Union[Entity, PropertySet],
    target: Any,
    *,
    registry: Optional[SchemaRegistry] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Populate ``target`` (a mutable dataclass instance) from properties.

    Fields with no matching property keep their current value. The first
    coercion failure is raised with ``property_name`` set; fields filled
    before it stay filled.
    """
    if target is None or isinstance(target, Entity):
        return

    registry = registry or get_registry()
    settings = settings or get_settings()

    schema = registry.describe(type(target))
    if schema.frozen:
        raise SchemaError(f"cannot unmarshal into frozen record {schema.type_name}")

    if isinstance(source, Entity):
        props = source.properties
        guard = source.lock
    else:
        props = source
        guard = contextlib.nullcontext()

    try:
        with guard:
            _RecordUnmarshaler(props, registry, settings).walk("", target, schema)
    except CoercionError as exc:
        metrics.inc_unmarshal("failed")
        metrics.inc_coercion_error(type(exc).__name__)
        _log.warning("unmarshal of %s failed: %s", schema.type_name, exc)
        raise
    metrics.inc_unmarshal("ok")


class _RecordUnmarshaler:
    def __init__(self, props: PropertySet, registry: SchemaRegistry, settings: Settings):
        self.props = props
        self.registry = registry
        self.settings = settings

    def walk(self, namespace: str, target: Any, schema: RecordSchema) -> None:
        for spec in schema.fields:
            if spec.base:
                self._base(target, spec)
                continue

            if spec.shape.is_record:
                child_ns = resolve(namespace, spec.name)
                child = self._child(target, spec, child_ns)
                if child is not None:
                    self.walk(child_ns, child, self.registry.describe(type(child)))
                continue

            if not spec.exposed:
                continue

            fqn = resolve(namespace, spec.name)
            prop = self.props.get(fqn)
            if prop is None:
                _log.debug("no property %r for %s.%s", fqn, schema.type_name, spec.name)
                metrics.inc_missing_property()
                continue

            current = getattr(target, spec.name)
            try:
                for raw in prop.occurrences():
                    current = coerce(raw, spec.shape, current, registry=self.registry, settings=self.settings)
            except CoercionError as exc:
                exc.property_name = fqn
                raise
            setattr(target, spec.name, current)

    def _child(self, target: Any, spec: FieldSpec, namespace: Optional[str]) -> Any:
        """Current nested record, allocated when ``namespace`` has properties.

        A None namespace (base records) always allocates.
        """
        child = getattr(target, spec.name)
        if child is not None:
            return child
        if namespace is not None and not self._has_namespace(namespace):
            return None
        nested = self.registry.describe(spec.shape.record_type)
        if not nested.constructible:
            return None
        child = nested.new_instance()
        setattr(target, spec.name, child)
        return child

    def _has_namespace(self, namespace: str) -> bool:
        prefix = namespace + "."
        return any(name.startswith(prefix) for name in self.props.names())

    def _base(self, target: Any, spec: FieldSpec) -> None:
        # Base properties were merged at the root of the owning entity.
        if spec.shape.is_record:
            child = self._child(target, spec, None)
            if child is not None:
                self.walk("", child, self.registry.describe(type(child)))
            return

        carrier = getattr(target, spec.name)
        if carrier is None:
            carrier = Entity()
            setattr(target, spec.name, carrier)
        restore_display(carrier, self.props)
