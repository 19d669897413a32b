from __future__ import annotations

import pytest

from chiselbuild.compose import DependencyComposer, classpaths, compose
from chiselbuild.dsl import dep, dev_only, implementation, runtime_only
from chiselbuild.errors import ConflictingScope, MissingProperty
from chiselbuild.model import DependencySet, Scope, Variant


def test_same_coordinate_same_scope_keeps_variant_entry_only() -> None:
    common = DependencySet([implementation("a:b:1"), implementation("c:d:1")])
    variant = DependencySet([implementation("a:b:1", transitive=False)])

    merged = compose(common, variant)

    assert len(merged) == 2
    assert merged.get("a:b:1").transitive is False
    assert [d.coordinate for d in merged] == ["a:b:1", "c:d:1"]


def test_union_appends_variant_only_entries() -> None:
    common = DependencySet([implementation("a:b:1")])
    variant = DependencySet([runtime_only("x:y:2"), dev_only("z:z:3")])

    merged = compose(common, variant)

    assert [d.coordinate for d in merged] == ["a:b:1", "x:y:2", "z:z:3"]


def test_compose_is_idempotent() -> None:
    common = DependencySet([implementation("a:b:1"), runtime_only("r:t:1")])
    variant = DependencySet([implementation("v:w:1"), implementation("a:b:1", transitive=False)])

    merged = compose(common, variant)

    assert compose(merged, merged) == merged


def test_conflicting_scope_raises() -> None:
    common = DependencySet([implementation("a:b:1")])
    variant = DependencySet([runtime_only("a:b:1")])

    with pytest.raises(ConflictingScope) as excinfo:
        compose(common, variant)
    assert excinfo.value.details["coordinate"] == "a:b:1"
    assert excinfo.value.details["common_scope"] == "compile"


def test_explicit_override_allows_scope_change() -> None:
    common = DependencySet([implementation("a:b:1")])
    variant = DependencySet([dep("a:b:1", "runtime", override=True)])

    merged = compose(common, variant)

    assert merged.get("a:b:1").scope is Scope.RUNTIME
    assert len(merged) == 1


def test_dependency_set_replaces_duplicates() -> None:
    s = DependencySet([implementation("a:b:1"), runtime_only("a:b:1")])
    assert len(s) == 1
    assert s.get("a:b:1").scope is Scope.RUNTIME


def test_composer_expands_placeholders_version_first() -> None:
    composer = DependencyComposer({"fabric_loader": "0.16.5"}, {"fabric_loader": "0.1", "minecraft": "1.21"})

    merged = composer.compose(
        [implementation("com.mojang:minecraft:${minecraft}")],
        [implementation("net.fabricmc:fabric-loader:${fabric_loader}")],
    )

    assert [d.coordinate for d in merged] == [
        "com.mojang:minecraft:1.21",
        "net.fabricmc:fabric-loader:0.16.5",
    ]


def test_composer_missing_property() -> None:
    composer = DependencyComposer({})
    with pytest.raises(MissingProperty) as excinfo:
        composer.expand("a:b:${nope}")
    assert excinfo.value.details["property"] == "nope"


def test_classpaths_route_by_scope() -> None:
    resolved = DependencySet([implementation("c:c:1"), runtime_only("r:r:1"), dev_only("d:d:1")])
    variant = Variant(id="fabric")

    cps = classpaths(resolved, variant, {"commonBundle": [":common@namedElements"]})

    assert cps["compileClasspath"] == [":common@namedElements", "c:c:1"]
    assert cps["runtimeClasspath"] == [":common@namedElements", "c:c:1", "r:r:1"]
    assert cps["developmentFabric"] == [":common@namedElements", "d:d:1"]
