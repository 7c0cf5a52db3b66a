"""Marshal native Python records to and from flat, namespaced entity properties."""

from propbridge.core.codec import coerce, marshal, merge_base, unmarshal
from propbridge.core.config import Settings, get_settings, load_settings
from propbridge.core.errors import (
    CoercionError,
    CyclicSchemaError,
    MessageError,
    NamespaceCollisionError,
    ParseError,
    PropertyBridgeError,
    RangeError,
    SchemaError,
    UnsupportedShapeError,
)
from propbridge.core.message import decode_request, encode_exception, encode_response
from propbridge.core.properties import (
    BookmarkColor,
    Entity,
    Label,
    Link,
    MatchingRule,
    Overlay,
    OverlayKind,
    OverlayPosition,
    Property,
    PropertySet,
    resolve,
)
from propbridge.core.schema import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    base_entity,
    describe,
    prop,
)

__version__ = "0.1.0"

marshal_to_properties = marshal
unmarshal_from_properties = unmarshal

__all__ = [
    "BookmarkColor",
    "CoercionError",
    "CyclicSchemaError",
    "Entity",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Label",
    "Link",
    "MatchingRule",
    "MessageError",
    "NamespaceCollisionError",
    "Overlay",
    "OverlayKind",
    "OverlayPosition",
    "ParseError",
    "Property",
    "PropertyBridgeError",
    "PropertySet",
    "RangeError",
    "SchemaError",
    "Settings",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "UnsupportedShapeError",
    "base_entity",
    "coerce",
    "decode_request",
    "describe",
    "encode_exception",
    "encode_response",
    "get_settings",
    "load_settings",
    "marshal",
    "marshal_to_properties",
    "merge_base",
    "prop",
    "resolve",
    "unmarshal",
    "unmarshal_from_properties",
]
