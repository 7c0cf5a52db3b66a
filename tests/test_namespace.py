from propbridge.core.properties.namespace import resolve


def test_resolve_lowercases_and_joins():
    assert resolve("target", "IP") == "target.ip"


def test_resolve_root_has_no_leading_dot():
    assert resolve("", "Target") == "target"


def test_resolve_trims_dots():
    assert resolve("", "") == ""
    assert resolve("a", "") == "a"


def test_resolve_does_not_lowercase_parent():
    # Parents are already resolved names; only the new segment is folded.
    assert resolve("a.b", "CamelCase") == "a.b.camelcase"


def test_resolve_collides_for_case_variants():
    assert resolve("x", "IP") == resolve("x", "ip")
