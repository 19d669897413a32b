# compose.py
from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import ConflictingScope, MissingProperty
from .model import DependencySet, DependencySpec, Scope, Variant

# ${name} placeholders inside coordinates, e.g. "net.fabricmc:fabric-loader:${fabric_loader}"
_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z0-9_.\-]+)\}")

COMMON_BUNDLE = "commonBundle"
SHADOW_BUNDLE = "shadowBundle"


def compose(common: DependencySet, variant_specific: DependencySet) -> DependencySet:
    """
    Merge a common dependency set with a variant-specific one.

    - union of both sets, keyed by coordinate
    - on a shared coordinate the variant-specific entry wins (no duplicates)
    - a shared coordinate with a different scope is a ConflictingScope,
      unless the variant entry is marked override=True

    Order: common entries first (a winning variant entry keeps the common
    entry's position), then variant-only entries. compose(r, r) == r.
    """
    for spec in variant_specific:
        base = common.get(spec.coordinate)
        if base is None or base.scope is spec.scope or spec.override:
            continue
        raise ConflictingScope(
            f"'{spec.coordinate}' is declared {base.scope.value} in common "
            f"but {spec.scope.value} for the variant",
            details={
                "coordinate": spec.coordinate,
                "common_scope": base.scope.value,
                "variant_scope": spec.scope.value,
            },
        )

    merged = DependencySet()
    for spec in common:
        merged.add(variant_specific.get(spec.coordinate) or spec)
    for spec in variant_specific:
        if spec.coordinate not in merged:
            merged.add(spec)
    return merged


class DependencyComposer:
    """
    Composer bound to a property lookup chain (version properties first,
    then project properties) so coordinates can carry ${name} placeholders.
    """

    def __init__(self, *lookups: Mapping[str, str]):
        self.lookups = lookups

    def lookup(self, key: str) -> Optional[str]:
        for props in self.lookups:
            if key in props:
                return props[key]
        return None

    def expand(self, coordinate: str) -> str:
        def _sub(m: re.Match) -> str:
            value = self.lookup(m.group(1))
            if value is None:
                raise MissingProperty(
                    f"No value for '{m.group(1)}' in coordinate '{coordinate}'",
                    details={"property": m.group(1), "coordinate": coordinate},
                )
            return value

        return _PLACEHOLDER_RE.sub(_sub, coordinate)

    def resolve(self, specs: Iterable[DependencySpec]) -> DependencySet:
        return DependencySet(replace(s, coordinate=self.expand(s.coordinate)) for s in specs)

    def compose(self, common: Iterable[DependencySpec], variant_specific: Iterable[DependencySpec]) -> DependencySet:
        return compose(self.resolve(common), self.resolve(variant_specific))


def development_classpath(variant: Variant) -> str:
    return "development" + variant.id[:1].upper() + variant.id[1:]


def classpaths(
    resolved: DependencySet,
    variant: Variant,
    bundles: Optional[Dict[str, List[str]]] = None,
) -> Dict[str, List[str]]:
    """
    Named classpaths for a resolved set.

      compile  -> compileClasspath + runtimeClasspath
      runtime  -> runtimeClasspath
      dev-only -> development<Variant>

    The commonBundle configuration (the common project, non-transitive) is
    extended by all three; shadowBundle only feeds the shade step.
    """
    dev = development_classpath(variant)
    out: Dict[str, List[str]] = {"compileClasspath": [], "runtimeClasspath": [], dev: []}

    for coord in (bundles or {}).get(COMMON_BUNDLE, []):
        for name in out:
            out[name].append(coord)

    for spec in resolved:
        if spec.scope is Scope.COMPILE:
            out["compileClasspath"].append(spec.coordinate)
            out["runtimeClasspath"].append(spec.coordinate)
        elif spec.scope is Scope.RUNTIME:
            out["runtimeClasspath"].append(spec.coordinate)
        else:
            out[dev].append(spec.coordinate)

    return out
