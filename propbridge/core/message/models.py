from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import Property, PropertySet


class UIMessageType(str, Enum):
    FATAL = "FatalError"
    PARTIAL = "PartialError"
    INFORM = "Inform"
    DEBUG = "Debug"


class UIMessage(BaseModel):
    text: str
    type: UIMessageType = UIMessageType.INFORM


class RequestEntity(BaseModel):
    type: str
    value: str = ""
    weight: int = 100
    properties: List[Property] = Field(default_factory=list)

    def to_entity(self) -> Entity:
        props = PropertySet()
        for p in self.properties:
            props.add(p.model_copy(deep=True))
        return Entity(type=self.type, display_name=self.type, value=self.value, weight=self.weight, properties=props)


class TransformRequest(BaseModel):
    entities: List[RequestEntity] = Field(default_factory=list)
    settings: Dict[str, str] = Field(default_factory=dict)
    soft_limit: int = 12
    hard_limit: int = 12

    @property
    def entity(self) -> Entity:
        """The first input entity, the one single-input transforms work on."""
        if not self.entities:
            return Entity()
        return self.entities[0].to_entity()
