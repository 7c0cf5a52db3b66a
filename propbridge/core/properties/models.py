from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, Field


# Well-known keys used to carry display attributes through the flat property set.
LINK_COLOR = "link#maltego.link.color"
LINK_STYLE = "link#maltego.link.style"
LINK_THICKNESS = "link#maltego.link.thickness"
LINK_LABEL = "link#maltego.link.label"
LINK_DIRECTION = "link#maltego.link.direction"
BOOKMARK = "bookmark#"
NOTES = "notes#"

TYPE_MARKER_VALUE = "Python type"


class MatchingRule(str, Enum):
    STRICT = "strict"
    LOOSE = "loose"


class OverlayPosition(str, Enum):
    NORTH = "N"
    SOUTH = "S"
    WEST = "W"
    NORTH_WEST = "NW"
    SOUTH_WEST = "SW"
    CENTER = "C"


class OverlayKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    COLOUR = "colour"


class LinkStyle(IntEnum):
    NORMAL = 0
    DASHED = 1
    DOTTED = 2
    DASH_DOT = 3


class LineThickness(IntEnum):
    VERY_THIN = 0
    THIN = 1
    NORMAL = 2
    THICK = 3
    VERY_THICK = 4


class LinkShowLabel(IntEnum):
    GLOBAL = 0
    SHOW = 1
    HIDE = 2


class LinkDirection(str, Enum):
    INPUT_TO_OUTPUT = "input-to-output"
    OUTPUT_TO_INPUT = "output-to-input"
    BIDIRECTIONAL = "bidirectional"


class BookmarkColor(str, Enum):
    NONE = "-1"
    BLUE = "0"
    GREEN = "1"
    YELLOW = "2"
    PURPLE = "3"
    RED = "4"


class Property(BaseModel):
    name: str
    display_name: str = ""
    alias: str = ""
    matching_rule: MatchingRule = MatchingRule.LOOSE
    value: str = ""
    # Raw occurrences of a repeated key (sequences, mappings).
    values: List[str] = Field(default_factory=list)
    hidden: bool = False
    readonly: bool = False
    sample: Optional[str] = None

    def occurrences(self) -> List[str]:
        return list(self.values) if self.values else [self.value]


class Overlay(BaseModel):
    property_name: str
    position: OverlayPosition
    kind: OverlayKind = OverlayKind.TEXT


class Label(BaseModel):
    name: str = "Info"
    content: str = ""
    type: str = "text/html"


class Link(BaseModel):
    color: str = ""
    style: LinkStyle = LinkStyle.NORMAL
    thickness: LineThickness = LineThickness.NORMAL
    show_label: LinkShowLabel = LinkShowLabel.GLOBAL
    label: str = ""
    direction: LinkDirection = LinkDirection.INPUT_TO_OUTPUT
    properties: List[Property] = Field(default_factory=list)

    def reverse(self) -> None:
        self.direction = LinkDirection.OUTPUT_TO_INPUT

    def add_property(self, prop: Property) -> None:
        self.properties.append(prop)


@dataclass(frozen=True)
class GroupMarker:
    """Where a nested record started, kept apart from user properties.

    ``position`` is the number of user properties that existed when the
    marker was emitted.
    """

    name: str
    display: str
    position: int
    value: str = TYPE_MARKER_VALUE


class PropertySet:
    """Ordered, uniquely keyed collection of properties.

    Re-adding a name replaces the entry in place (last write wins) and
    keeps the position of the first insertion.
    """

    def __init__(self, props: Optional[List[Property]] = None):
        self._items: Dict[str, Property] = {}
        for p in props or []:
            self.add(p)

    def add(self, prop: Property) -> None:
        self._items[prop.name] = prop

    def get(self, name: str) -> Optional[Property]:
        return self._items.get(name)

    def value(self, name: str) -> str:
        p = self._items.get(name)
        return p.value if p is not None else ""

    def remove(self, name: str) -> Optional[Property]:
        return self._items.pop(name, None)

    def names(self) -> List[str]:
        return list(self._items.keys())

    def copy(self) -> "PropertySet":
        return PropertySet([p.model_copy(deep=True) for p in self._items.values()])

    def to_list(self) -> List[Property]:
        return list(self._items.values())

    def to_dict(self) -> Dict[str, str]:
        return {name: p.value for name, p in self._items.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[Property]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertySet):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"PropertySet({self.names()!r})"
