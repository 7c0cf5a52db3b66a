from __future__ import annotations

from typing import Any, Optional


class PropertyBridgeError(Exception):
    pass


class CoercionError(PropertyBridgeError, ValueError):
    """A raw wire string could not be converted into the target shape.

    ``property_name`` is filled in by the unmarshaler once it knows which
    property the failing value came from.
    """

    def __init__(self, message: str, *, raw: Optional[str] = None, shape: Any = None):
        super().__init__(message)
        self.raw = raw
        self.shape = shape
        self.property_name: Optional[str] = None

    def __str__(self) -> str:
        base = super().__str__()
        if self.property_name:
            return f"{self.property_name}: {base}"
        return base


class ParseError(CoercionError):
    pass


class RangeError(CoercionError):
    pass


class UnsupportedShapeError(CoercionError):
    pass


class SchemaError(PropertyBridgeError, TypeError):
    pass


class CyclicSchemaError(SchemaError):
    def __init__(self, path: list[str]):
        super().__init__("Cyclic record schema: " + " -> ".join(path))
        self.path = list(path)


class NamespaceCollisionError(PropertyBridgeError):
    def __init__(self, name: str):
        super().__init__(f"Property name collision on {name!r}")
        self.name = name


class MessageError(PropertyBridgeError, ValueError):
    pass
