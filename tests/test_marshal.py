import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

import pytest

from propbridge import marshal, prop
from propbridge.core.config import Settings
from propbridge.core.errors import NamespaceCollisionError
from propbridge.core.observability import metrics
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import (
    TYPE_MARKER_VALUE,
    MatchingRule,
    OverlayKind,
    OverlayPosition,
)
from propbridge.core.schema import SchemaRegistry


@dataclass
class Address:
    street: str = prop("Street", default="")
    city: str = prop("City", strict="yes", default="")
    secret: str = ""


@dataclass
class Target:
    os: str = prop("Operating System", strict="yes", alias="alias", default="")
    hostname: str = field(default="", metadata={"strict": "yes", "alias": "host"})
    ip: str = prop("IP Address", alias="address", overlay="W,image", default="")
    port: int = prop("Port", overlay="N", default=0)
    address: Address = field(default_factory=Address)
    _token: str = prop("Token", default="hidden")


@dataclass
class Deep:
    level: int = prop("Level", default=0)
    hidden_note: str = "never exposed"


@dataclass
class Middle:
    deep: Deep = field(default_factory=Deep)
    note: str = "not exposed either"


@dataclass
class Outer:
    middle: Middle = field(default_factory=Middle)
    optional_middle: Optional[Middle] = None


@dataclass
class Collections:
    tags: List[str] = prop("Tags", default_factory=list)
    headers: Dict[str, int] = prop("Headers", default_factory=dict)
    timeout: timedelta = prop("Timeout", default=timedelta(0))
    enabled: bool = prop("Enabled", default=False)
    retries: Optional[int] = prop("Retries", default=None)


@dataclass
class Clashing:
    IP: str = prop("IP upper", default="upper")
    ip: str = prop("IP lower", default="lower")


def _target() -> Target:
    return Target(
        os="linux",
        hostname="web01",
        ip="10.0.0.1",
        port=22,
        address=Address(street="Main St", city="Paris", secret="x"),
    )


def test_marshal_flattens_exposed_fields_with_namespaces():
    entity = marshal(_target())

    assert entity.type == "Target"
    assert entity.properties.names() == ["os", "ip", "port", "address.street", "address.city"]
    assert entity.property("os") == "linux"
    assert entity.property("port") == "22"
    assert entity.property("address.city") == "Paris"


def test_marshal_skips_unexposed_and_private_fields():
    names = marshal(_target()).properties.names()
    assert "hostname" not in names
    assert "_token" not in names
    assert "address.secret" not in names


def test_unexposed_fields_omitted_at_any_depth():
    entity = marshal(Outer(optional_middle=Middle()))
    assert entity.properties.names() == ["middle.deep.level", "optional_middle.deep.level"]


def test_matching_rule_and_alias():
    entity = marshal(_target())
    os_prop = entity.field("os")
    ip_prop = entity.field("ip")
    port_prop = entity.field("port")

    assert os_prop.matching_rule == MatchingRule.STRICT
    assert os_prop.alias == "alias"
    assert os_prop.display_name == "Operating System"
    assert ip_prop.matching_rule == MatchingRule.LOOSE
    assert ip_prop.alias == "address"
    assert port_prop.alias == "port"
    assert entity.field("address.city").matching_rule == MatchingRule.STRICT


def test_overlays_reference_properties():
    entity = marshal(_target())
    west = entity.overlays[OverlayPosition.WEST]
    north = entity.overlays[OverlayPosition.NORTH]

    assert west.property_name == "ip"
    assert west.kind == OverlayKind.IMAGE
    assert north.property_name == "port"
    assert north.kind == OverlayKind.TEXT


def test_group_markers_are_kept_apart_from_properties():
    entity = marshal(_target())

    assert [g.name for g in entity.groups] == ["target", "address"]
    assert [g.position for g in entity.groups] == [0, 3]
    assert all(g.value == TYPE_MARKER_VALUE for g in entity.groups)
    assert "target" not in entity.properties


def test_nested_group_markers_use_parent_namespace():
    entity = marshal(Outer())
    assert [g.name for g in entity.groups] == ["outer", "middle", "middle.deep"]


def test_none_nested_record_is_skipped():
    entity = marshal(Outer())
    assert "optional_middle.deep.level" not in entity.properties


def test_non_record_input_yields_single_opaque_property():
    entity = marshal(42)
    props = entity.properties.to_list()

    assert len(props) == 1
    assert props[0].name == "type#builtins.int"
    assert props[0].value == "42"
    assert entity.type == "int"


def test_entity_input_is_snapshotted():
    src = Entity(type="maltego.Phrase", value="hello")
    src.link.color = "#ff0000"
    out = marshal(src)

    assert out is not src
    assert out.type == "maltego.Phrase"
    assert out.property("link#maltego.link.color") == "#ff0000"
    assert "link#maltego.link.color" not in src.properties


def test_collections_render_one_occurrence_per_element():
    entity = marshal(Collections(tags=["a", "b"], headers={"x": 1}, timeout=timedelta(minutes=90), enabled=True))

    tags = entity.field("tags")
    assert tags.values == ["a", "b"]
    assert tags.value == "a, b"
    assert entity.field("headers").values == ["x:1"]
    assert entity.property("timeout") == "1h30m0s"
    assert entity.property("enabled") == "true"


def test_none_and_empty_values_emit_nothing():
    entity = marshal(Collections())
    assert "tags" not in entity.properties
    assert "headers" not in entity.properties
    assert "retries" not in entity.properties
    assert entity.property("enabled") == "false"


def test_marshal_is_idempotent():
    first = marshal(_target())
    second = marshal(_target())
    assert first.properties == second.properties
    assert first.overlays == second.overlays


def test_marshal_uses_configured_weight():
    entity = marshal(_target(), settings=Settings(default_weight=7))
    assert entity.weight == 7


def test_collision_keeps_last_value_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="propbridge.marshal"):
        entity = marshal(Clashing(), registry=SchemaRegistry())

    assert entity.property("ip") == "lower"
    assert entity.field("ip").display_name == "IP lower"
    assert any("written twice" in r.getMessage() for r in caplog.records)
    assert metrics.snapshot()["namespace_collisions"] == 1


def test_collision_can_be_silent():
    entity = marshal(Clashing(), settings=Settings(namespace_collisions="overwrite"))
    assert entity.property("ip") == "lower"
    assert "namespace_collisions" not in metrics.snapshot()


def test_collision_can_be_an_error():
    with pytest.raises(NamespaceCollisionError):
        marshal(Clashing(), settings=Settings(namespace_collisions="error"))


def test_marshal_counts_calls():
    marshal(_target())
    marshal(1)
    assert metrics.snapshot()["marshal_total"] == 2
