from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from propbridge.core.config import get_settings

from .models import (
    BOOKMARK,
    LINK_COLOR,
    LINK_DIRECTION,
    LINK_LABEL,
    LINK_STYLE,
    LINK_THICKNESS,
    NOTES,
    BookmarkColor,
    GroupMarker,
    Label,
    Link,
    MatchingRule,
    Overlay,
    OverlayKind,
    OverlayPosition,
    Property,
    PropertySet,
)


@dataclass
class Entity:
    """Property model of one record plus its display attributes.

    A fresh Entity is built by every marshal call. All mutators and lookups
    go through one coarse lock, so a marshal or unmarshal walk holding it
    cannot interleave with another one on the same instance.
    """

    type: str = ""
    display_name: str = ""
    value: str = ""
    weight: int = 100
    icon_url: str = ""

    link: Link = field(default_factory=Link)
    bookmark: BookmarkColor = BookmarkColor.NONE
    overlays: Dict[OverlayPosition, Overlay] = field(default_factory=dict)
    labels: List[Label] = field(default_factory=list)

    properties: PropertySet = field(default_factory=PropertySet)
    groups: List[GroupMarker] = field(default_factory=list)

    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def add_property(self, prop: Property) -> None:
        with self.lock:
            self.properties.add(prop)

    def property(self, name: str) -> str:
        """String value of a property, or "" when absent."""
        with self.lock:
            return self.properties.value(name)

    def field(self, name: str) -> Optional[Property]:
        with self.lock:
            return self.properties.get(name)

    def add_overlay(
        self,
        property_name: str,
        position: OverlayPosition,
        kind: OverlayKind = OverlayKind.TEXT,
    ) -> None:
        with self.lock:
            self.overlays[position] = Overlay(property_name=property_name, position=position, kind=kind)

    def add_label(self, title: str, content: str, *, default_title: Optional[str] = None) -> None:
        """Append a display label; an empty title falls back to the configured default."""
        if not title:
            title = default_title or get_settings().default_label_title
        with self.lock:
            self.labels.append(Label(name=title, content=content))

    def add_group(self, name: str, display: str) -> None:
        with self.lock:
            self.groups.append(GroupMarker(name=name, display=display, position=len(self.properties)))

    def set_note(self, note: str) -> None:
        self.add_property(Property(name=NOTES, display_name="Notes", value=note))

    def display_properties(self) -> List[Property]:
        """Link and bookmark settings flattened into their synthetic keys."""
        with self.lock:
            link = self.link
            out = [
                Property(name=LINK_COLOR, display_name="LinkColor", value=link.color),
                Property(name=LINK_STYLE, display_name="LinkStyle", value=str(int(link.style))),
                Property(name=LINK_THICKNESS, display_name="Thickness", value=str(int(link.thickness))),
                Property(name=LINK_LABEL, display_name="Label", value=link.label),
                Property(
                    name=LINK_DIRECTION,
                    display_name="LinkDirection",
                    matching_rule=MatchingRule.LOOSE,
                    value=link.direction.value,
                ),
            ]
            out.extend(p.model_copy() for p in link.properties)
            out.append(Property(name=BOOKMARK, display_name="Bookmark", value=self.bookmark.value))
            return out

    def snapshot(self) -> "Entity":
        """Independent copy whose properties include the display properties."""
        with self.lock:
            props = self.properties.copy()
            for p in self.display_properties():
                props.add(p)
            return Entity(
                type=self.type,
                display_name=self.display_name,
                value=self.value,
                weight=self.weight,
                icon_url=self.icon_url,
                link=self.link.model_copy(deep=True),
                bookmark=self.bookmark,
                overlays=dict(self.overlays),
                labels=[lb.model_copy() for lb in self.labels],
                properties=props,
                groups=list(self.groups),
            )

    def unmarshal(self, target: object) -> None:
        from propbridge.core.codec.unmarshal import unmarshal

        unmarshal(self, target)
