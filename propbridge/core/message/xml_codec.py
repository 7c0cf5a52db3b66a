"""
XML envelope for transform requests and responses.

Request:

    <MaltegoMessage>
      <MaltegoTransformRequestMessage>
        <Entities>
          <Entity Type="maltego.IPv4Address">
            <Value>10.0.0.1</Value>
            <Weight>100</Weight>
            <AdditionalFields>
              <Field Name="ports" DisplayName="Ports">22</Field>
              <Field Name="ports" DisplayName="Ports">443</Field>
            </AdditionalFields>
          </Entity>
        </Entities>
        <TransformFields><Field Name="api.key">...</Field></TransformFields>
        <Limits SoftLimit="12" HardLimit="12"/>
      </MaltegoTransformRequestMessage>
    </MaltegoMessage>

A Field repeated under the same Name becomes one Property with several
occurrences; unmarshal coerces each of them in order.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional

from propbridge.core.errors import MessageError
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import GroupMarker, MatchingRule, Property

from .models import RequestEntity, TransformRequest, UIMessage

_log = logging.getLogger("propbridge.message")


def _int(text: Optional[str], default: int) -> int:
    try:
        return int((text or "").strip())
    except ValueError:
        return default


def _decode_fields(parent: Optional[ET.Element]) -> List[Property]:
    out: dict[str, Property] = {}
    if parent is None:
        return []
    for f in parent.findall("Field"):
        name = f.get("Name")
        if not name:
            _log.warning("Skipping request field without a Name attribute")
            continue
        text = f.text or ""
        existing = out.get(name)
        if existing is None:
            rule = (f.get("MatchingRule") or "loose").lower()
            out[name] = Property(
                name=name,
                display_name=f.get("DisplayName") or name,
                matching_rule=MatchingRule.STRICT if rule == "strict" else MatchingRule.LOOSE,
                value=text,
            )
            continue
        if not existing.values:
            existing.values.append(existing.value)
        existing.values.append(text)
    return list(out.values())


def decode_request(xml_text: str | bytes) -> TransformRequest:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MessageError(f"Malformed transform request: {exc}") from exc

    msg = root if root.tag == "MaltegoTransformRequestMessage" else root.find("MaltegoTransformRequestMessage")
    if msg is None:
        raise MessageError("Missing MaltegoTransformRequestMessage element")

    entities: List[RequestEntity] = []
    for e in msg.findall("Entities/Entity"):
        etype = e.get("Type")
        if not etype:
            raise MessageError("Request entity without a Type attribute")
        entities.append(
            RequestEntity(
                type=etype,
                value=e.findtext("Value") or "",
                weight=_int(e.findtext("Weight"), 100),
                properties=_decode_fields(e.find("AdditionalFields")),
            )
        )

    settings = {p.name: p.value for p in _decode_fields(msg.find("TransformFields"))}

    limits = msg.find("Limits")
    soft = _int(limits.get("SoftLimit") if limits is not None else None, 12)
    hard = _int(limits.get("HardLimit") if limits is not None else None, 12)

    return TransformRequest(entities=entities, settings=settings, soft_limit=soft, hard_limit=hard)


def _field(parent: ET.Element, p: Property, value: str) -> None:
    el = ET.SubElement(parent, "Field", Name=p.name, DisplayName=p.display_name or p.name)
    el.set("MatchingRule", p.matching_rule.value)
    el.text = value


def _group_field(parent: ET.Element, group: GroupMarker) -> None:
    el = ET.SubElement(parent, "Field", Name=group.name, DisplayName=group.display)
    el.set("MatchingRule", MatchingRule.LOOSE.value)
    el.text = group.value


def _encode_entity(parent: ET.Element, entity: Entity) -> None:
    with entity.lock:
        el = ET.SubElement(parent, "Entity", Type=entity.type)
        ET.SubElement(el, "Value").text = entity.value
        ET.SubElement(el, "Weight").text = str(entity.weight)
        if entity.icon_url:
            ET.SubElement(el, "IconURL").text = entity.icon_url

        if entity.labels:
            info = ET.SubElement(el, "DisplayInformation")
            for lb in entity.labels:
                ET.SubElement(info, "Label", Name=lb.name, Type=lb.type).text = lb.content

        fields = ET.SubElement(el, "AdditionalFields")
        props = entity.snapshot().properties.to_list()
        # A marker goes in front of the property at its recorded position.
        pending = sorted(entity.groups, key=lambda g: g.position)
        for i, p in enumerate(props):
            while pending and pending[0].position <= i:
                _group_field(fields, pending.pop(0))
            for raw in p.occurrences():
                _field(fields, p, raw)
        for g in pending:
            _group_field(fields, g)

        if entity.overlays:
            overlays = ET.SubElement(el, "Overlays")
            for ov in entity.overlays.values():
                ET.SubElement(
                    overlays,
                    "Overlay",
                    propertyName=ov.property_name,
                    position=ov.position.value,
                    type=ov.kind.value,
                )


def _document(inner: ET.Element) -> str:
    root = ET.Element("MaltegoMessage")
    root.append(inner)
    return ET.tostring(root, encoding="unicode")


def encode_response(entities: Iterable[Entity], messages: Iterable[UIMessage] = ()) -> str:
    resp = ET.Element("MaltegoTransformResponseMessage")
    ents = ET.SubElement(resp, "Entities")
    count = 0
    for entity in entities:
        _encode_entity(ents, entity)
        count += 1

    ui = ET.SubElement(resp, "UIMessages")
    for m in messages:
        ET.SubElement(ui, "UIMessage", MessageType=m.type.value).text = m.text

    _log.debug("encoded transform response with %d entities", count)
    return _document(resp)


def encode_exception(errors: Iterable[str | Exception]) -> str:
    exc_msg = ET.Element("MaltegoTransformExceptionMessage")
    exceptions = ET.SubElement(exc_msg, "Exceptions")
    for err in errors:
        ET.SubElement(exceptions, "Exception").text = str(err)
    return _document(exc_msg)
