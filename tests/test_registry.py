from __future__ import annotations

from gene_lineage_viz.registry import IndexRegistry


def test_registration_is_idempotent() -> None:
    registry = IndexRegistry()
    first = registry.register_if_absent("GCA_1")
    second = registry.register_if_absent("GCA_1")
    assert first == second == 0
    assert len(registry) == 1


def test_ordinals_are_dense_in_first_seen_order() -> None:
    registry = IndexRegistry.from_names(["b", "a", "b", "c", "a"])
    assert registry.names() == ["b", "a", "c"]
    assert [registry.lookup(name) for name in ("b", "a", "c")] == [0, 1, 2]


def test_lookup_of_unknown_name_is_none() -> None:
    registry = IndexRegistry.from_names(["a"])
    assert registry.lookup("missing") is None
    assert "missing" not in registry
    assert "a" in registry


def test_copy_grows_independently() -> None:
    registry = IndexRegistry.from_names(["a", "b"])
    grown = registry.copy()
    assert grown.register_if_absent("c") == 2
    assert len(registry) == 2
    assert "c" not in registry
    assert list(grown) == ["a", "b", "c"]
