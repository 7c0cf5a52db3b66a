from __future__ import annotations

import dataclasses
from typing import Any, Dict, Optional

DISPLAY = "display"
STRICT = "strict"
ALIAS = "alias"
OVERLAY = "overlay"
HIDDEN = "hidden"
READONLY = "readonly"
SAMPLE = "sample"
BASE = "base"


def prop(
    display: str = "",
    *,
    strict: Any = None,
    alias: Optional[str] = None,
    overlay: Optional[str] = None,
    hidden: bool = False,
    readonly: bool = False,
    sample: Optional[str] = None,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field as an exposed property.

    Example:

        @dataclass
        class Target:
            ip: str = prop("IP Address", alias="address", overlay="W,image", default="")

    ``strict`` switches the matching rule to strict when truthy; ``overlay``
    is "<position>[,<kind>]" with positions N S W NW SW C and kinds text,
    image, colour. Any other keyword goes to ``dataclasses.field``.
    """
    metadata: Dict[str, Any] = dict(kwargs.pop("metadata", None) or {})
    metadata[DISPLAY] = display
    if strict is not None:
        metadata[STRICT] = strict
    if alias is not None:
        metadata[ALIAS] = alias
    if overlay is not None:
        metadata[OVERLAY] = overlay
    if hidden:
        metadata[HIDDEN] = True
    if readonly:
        metadata[READONLY] = True
    if sample is not None:
        metadata[SAMPLE] = sample
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)


def base_entity(*, default: Any = dataclasses.MISSING, default_factory: Any = dataclasses.MISSING, **kwargs: Any) -> Any:
    """Mark a field as the base entity whose properties and display attributes are inherited.

    Without a default, the field defaults to a fresh ``Entity``.
    """
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        from propbridge.core.properties.entity import Entity

        default_factory = Entity
    metadata: Dict[str, Any] = dict(kwargs.pop("metadata", None) or {})
    metadata[BASE] = True
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)
