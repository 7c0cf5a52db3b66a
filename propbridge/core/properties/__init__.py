from .entity import Entity
from .models import (
    BookmarkColor,
    GroupMarker,
    Label,
    LineThickness,
    Link,
    LinkDirection,
    LinkShowLabel,
    LinkStyle,
    MatchingRule,
    Overlay,
    OverlayKind,
    OverlayPosition,
    Property,
    PropertySet,
)
from .namespace import resolve

__all__ = [
    "BookmarkColor",
    "Entity",
    "GroupMarker",
    "Label",
    "LineThickness",
    "Link",
    "LinkDirection",
    "LinkShowLabel",
    "LinkStyle",
    "MatchingRule",
    "Overlay",
    "OverlayKind",
    "OverlayPosition",
    "Property",
    "PropertySet",
    "resolve",
]
