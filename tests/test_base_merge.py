import logging
from dataclasses import dataclass
from typing import Optional

from propbridge import base_entity, marshal, merge_base, prop, unmarshal
from propbridge.core.observability import metrics
from propbridge.core.properties.entity import Entity
from propbridge.core.properties.models import (
    LINK_COLOR,
    LINK_STYLE,
    BookmarkColor,
    LinkDirection,
    LinkStyle,
    Property,
    PropertySet,
)


@dataclass
class Shared:
    p: str = prop("P", default="")
    q: str = prop("Q", default="")


@dataclass
class Derived:
    shared: Shared = base_entity(default_factory=Shared)
    p: str = prop("P", default="")


@dataclass
class Credential:
    entity: Entity = base_entity()
    user: str = prop("User", default="")


@dataclass
class MaybeCarrier:
    entity: Optional[Entity] = base_entity(default=None)
    user: str = prop("User", default="")


def _credential() -> Credential:
    cred = Credential(user="root")
    cred.entity.link.color = "#43eb36"
    cred.entity.link.reverse()
    cred.entity.bookmark = BookmarkColor.RED
    cred.entity.add_label("Source", "<b>db</b>")
    return cred


def test_derived_fields_override_base_in_place():
    entity = marshal(Derived(shared=Shared(p="from-base", q="only-base"), p="from-derived"))

    assert entity.property("p") == "from-derived"
    assert entity.property("q") == "only-base"
    assert entity.properties.names() == ["p", "q"]


def test_base_override_is_not_a_collision():
    marshal(Derived(shared=Shared(p="a"), p="b"))
    assert "namespace_collisions" not in metrics.snapshot()


def test_entity_carrier_display_attributes_are_inherited():
    entity = marshal(_credential())

    assert entity.link.color == "#43eb36"
    assert entity.link.direction == LinkDirection.OUTPUT_TO_INPUT
    assert entity.bookmark == BookmarkColor.RED
    assert [lb.name for lb in entity.labels] == ["Source"]
    assert entity.property("user") == "root"
    assert entity.property(LINK_COLOR) == "#43eb36"


def test_own_field_wins_over_carrier_property():
    cred = _credential()
    cred.entity.add_property(Property(name="user", value="base-user"))
    entity = marshal(cred)
    assert entity.property("user") == "root"


def test_explicit_property_after_marshal_wins():
    entity = marshal(Derived(shared=Shared(p="from-base")))
    entity.add_property(Property(name="p", value="manual"))
    assert entity.property("p") == "manual"


def test_base_labels_are_prepended():
    base = Entity()
    base.add_label("Base", "b")
    base.add_label("Own", "from-base")
    into = Entity()
    into.add_label("Own", "from-owner")

    merge_base(base, into)

    assert [(lb.name, lb.content) for lb in into.labels] == [
        ("Base", "b"),
        ("Own", "from-base"),
        ("Own", "from-owner"),
    ]


def test_base_labels_can_be_deduplicated():
    base = Entity()
    base.add_label("Base", "b")
    base.add_label("Own", "from-base")
    into = Entity()
    into.add_label("Own", "from-owner")

    merge_base(base, into, dedupe_labels=True)

    assert [(lb.name, lb.content) for lb in into.labels] == [("Base", "b"), ("Own", "from-owner")]


def test_merge_does_not_touch_base():
    base = Entity()
    base.add_property(Property(name="k", value="v"))
    into = Entity()
    merge_base(base, into)
    into.properties.get("k").value = "changed"
    assert base.property("k") == "v"


def test_unreadable_display_property_is_ignored(caplog):
    base = Entity()
    base.add_property(Property(name=LINK_STYLE, value="bogus"))
    into = Entity()

    with caplog.at_level(logging.WARNING, logger="propbridge.merge"):
        merge_base(base, into)

    assert into.link.style == LinkStyle.NORMAL
    assert any(LINK_STYLE in r.getMessage() for r in caplog.records)


def test_unmarshal_restores_entity_carrier():
    entity = marshal(_credential())
    dst = Credential()
    unmarshal(entity, dst)

    assert dst.user == "root"
    assert dst.entity.link.color == "#43eb36"
    assert dst.entity.link.direction == LinkDirection.OUTPUT_TO_INPUT
    assert dst.entity.bookmark == BookmarkColor.RED


def test_unmarshal_allocates_missing_carrier():
    props = PropertySet([Property(name=LINK_COLOR, value="#000000"), Property(name="user", value="u")])
    dst = MaybeCarrier()
    unmarshal(props, dst)

    assert isinstance(dst.entity, Entity)
    assert dst.entity.link.color == "#000000"
    assert dst.user == "u"


def test_unmarshal_fills_base_record_from_root_namespace():
    entity = marshal(Derived(shared=Shared(p="from-base", q="only-base"), p="from-derived"))
    dst = Derived()
    unmarshal(entity, dst)

    assert dst.p == "from-derived"
    assert dst.shared.q == "only-base"
    # The shared key holds the derived value after the merge.
    assert dst.shared.p == "from-derived"


def test_base_group_markers_are_kept():
    entity = marshal(Derived(shared=Shared(p="a", q="b"), p="c"))
    assert [(g.name, g.position) for g in entity.groups] == [("shared", 0), ("derived", 2)]


def test_merge_shifts_base_groups_past_existing_properties():
    base = Entity()
    base.add_group("base", "Base")
    base.add_property(Property(name="k", value="v"))
    into = Entity()
    into.add_property(Property(name="own", value="x"))

    merge_base(base, into)

    assert [(g.name, g.position) for g in into.groups] == [("base", 1)]


def test_base_record_counts_as_one_marshal():
    marshal(Derived(shared=Shared(p="a"), p="b"))
    assert metrics.snapshot()["marshal_total"] == 1
