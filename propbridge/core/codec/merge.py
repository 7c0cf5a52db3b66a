from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional, TypeVar

from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import (
    BOOKMARK,
    LINK_COLOR,
    LINK_DIRECTION,
    LINK_LABEL,
    LINK_STYLE,
    LINK_THICKNESS,
    BookmarkColor,
    LineThickness,
    LinkDirection,
    LinkStyle,
    PropertySet,
)

_log = logging.getLogger("propbridge.merge")

T = TypeVar("T")


def _read(props: PropertySet, key: str, convert: Callable[[str], T]) -> Optional[T]:
    p = props.get(key)
    if p is None:
        return None
    try:
        return convert(p.value)
    except ValueError:
        _log.warning("Ignoring unreadable display property %s=%r", key, p.value)
        return None


def restore_display(entity: Entity, props: PropertySet) -> None:
    """Set link and bookmark attributes of ``entity`` from their synthetic keys.

    Keys that are absent or unreadable leave the current attribute alone.
    """
    with entity.lock:
        link = entity.link
        color = _read(props, LINK_COLOR, str)
        if color is not None:
            link.color = color
        style = _read(props, LINK_STYLE, lambda v: LinkStyle(int(v)))
        if style is not None:
            link.style = style
        thickness = _read(props, LINK_THICKNESS, lambda v: LineThickness(int(v)))
        if thickness is not None:
            link.thickness = thickness
        label = _read(props, LINK_LABEL, str)
        if label is not None:
            link.label = label
        direction = _read(props, LINK_DIRECTION, LinkDirection)
        if direction is not None:
            link.direction = direction
        bookmark = _read(props, BOOKMARK, BookmarkColor)
        if bookmark is not None:
            entity.bookmark = bookmark


def merge_base(base: Entity, into: Entity, *, dedupe_labels: bool = False) -> None:
    """Fold a base entity into the entity that embeds it.

    Every base property is copied under its own key, so anything the owner
    sets afterwards under the same key wins. Base labels go first. Base
    group markers are kept, shifted past the properties ``into`` already had.
    """
    with base.lock:
        props = [p.model_copy(deep=True) for p in base.properties]
        labels = [lb.model_copy() for lb in base.labels]
        groups = list(base.groups)

    with into.lock:
        offset = len(into.properties)
        into.groups.extend(replace(g, position=g.position + offset) for g in groups)
        for p in props:
            into.properties.add(p)
        restore_display(into, into.properties)

        if dedupe_labels:
            own = {lb.name for lb in into.labels}
            labels = [lb for lb in labels if lb.name not in own]
        into.labels = labels + into.labels

    _log.debug("merged base %s into %s: %d properties, %d labels", base.type, into.type, len(props), len(labels))
