# src/chiselbuild/dsl.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .model import BuildStep, DependencySpec, Manifest, Repository, RunConfig, Scope


# ---------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------

def dep(
    coordinate: str,
    scope: Scope | str = Scope.COMPILE,
    *,
    transitive: bool = True,
    override: bool = False,
) -> DependencySpec:
    """Create a dependency spec. `scope` accepts the enum or its value."""
    if isinstance(scope, str):
        scope = Scope(scope)
    return DependencySpec(coordinate=coordinate, scope=scope, transitive=transitive, override=override)


def implementation(coordinate: str, **kw) -> DependencySpec:
    return dep(coordinate, Scope.COMPILE, **kw)


def runtime_only(coordinate: str, **kw) -> DependencySpec:
    return dep(coordinate, Scope.RUNTIME, **kw)


def dev_only(coordinate: str, **kw) -> DependencySpec:
    return dep(coordinate, Scope.DEV_ONLY, **kw)


# ---------------------------------------------------------------------
# Step / repo / run helpers
# ---------------------------------------------------------------------

def step(
    name: str,
    run: str | None = None,
    *,
    needs: Optional[Iterable[str]] = None,
    inputs: Optional[Iterable[str]] = None,
    outputs: Optional[Iterable[str]] = None,
    kind: str | None = None,
    data: Optional[Dict[str, object]] = None,
) -> BuildStep:
    """Create a build step; steps without a command default to kind='noop'."""
    return BuildStep(
        name=name,
        inputs=frozenset(inputs or ()),
        outputs=frozenset(outputs or ()),
        needs=tuple(needs or ()),
        run=run,
        kind=kind or ("shell" if run else "noop"),
        data=dict(data or {}),
    )


def repo(url: str, name: str | None = None) -> Repository:
    if name is None:
        # host part of the url, e.g. "maven.terraformersmc.com"
        name = url.split("://", 1)[-1].split("/", 1)[0]
    return Repository(name=name, url=url)


def run_config(
    name: str,
    side: str | None = None,
    *,
    run_dir: str | None = None,
    args: Iterable[str] = (),
    ide: bool = True,
) -> RunConfig:
    side = side or name
    if side not in ("client", "server"):
        raise ValueError(f"run_config({name!r}): side must be 'client' or 'server', got {side!r}")
    return RunConfig(
        name=name,
        side=side,
        run_dir=run_dir or side,
        program_args=tuple(args),
        ide_generated=ide,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

def _property_key(name: str) -> str:
    if name.startswith("mod_"):
        return "mod." + name[len("mod_"):]
    return name


class ManifestBuilder:
    def __init__(self, **properties: str):
        self._props: Dict[str, str] = {_property_key(k): str(v) for k, v in properties.items()}
        self._variants: Dict[str, List[str]] = {}
        self._versions: List[str] = []
        self._common: List[DependencySpec] = []
        self._per_variant: Dict[str, List[DependencySpec]] = {}
        self._repos: List[Repository] = []
        self._runs: List[RunConfig] = []
        self._java_rules: List[tuple] = []
        self._java_default: int = 17
        self._resources: List[str] = []
        self._steps: List[BuildStep] = []
        self._version_props: Dict[str, Dict[str, str]] = {}

    def prop(self, key: str, value: str):
        self._props[key] = str(value)
        return self

    def variant(self, variant_id: str, *flags: str):
        self._variants[variant_id] = list(flags)
        return self

    def versions(self, *versions: str):
        self._versions.extend(versions)
        return self

    def version_props(self, version: str, **props: str):
        self._version_props.setdefault(version, {}).update({k: str(v) for k, v in props.items()})
        return self

    def common(self, *specs: DependencySpec):
        self._common.extend(specs)
        return self

    def for_variant(self, variant_id: str, *specs: DependencySpec):
        self._per_variant.setdefault(variant_id, []).extend(specs)
        return self

    def repositories(self, *urls: str):
        self._repos.extend(repo(u) for u in urls)
        return self

    def runs(self, *configs: RunConfig):
        self._runs.extend(configs)
        return self

    def java(self, predicate: str, level: int):
        self._java_rules.append((predicate, level))
        return self

    def java_default(self, level: int):
        self._java_default = level
        return self

    def resources(self, *templates: str):
        self._resources.extend(templates)
        return self

    def steps(self, *steps: BuildStep):
        self._steps.extend(steps)
        return self

    def build(self) -> Manifest:
        if not self._variants:
            raise ValueError("Manifest declares no variants")
        return Manifest(
            properties=dict(self._props),
            variants=dict(self._variants),
            versions=list(self._versions),
            common=list(self._common),
            per_variant={k: list(v) for k, v in self._per_variant.items()},
            repositories=list(self._repos),
            run_configs=list(self._runs),
            java_rules=list(self._java_rules),
            java_default=self._java_default,
            resources=list(self._resources),
            steps=list(self._steps),
            version_properties={k: dict(v) for k, v in self._version_props.items()},
        )


def project(**properties: str) -> ManifestBuilder:
    """
    Convenience: project(mod_id="locomotion", mod_version="1.0").variant("fabric")...

    Keywords with a `mod_` prefix map to the dotted project keys
    (mod_id -> mod.id, mod_version_suffix -> mod.version_suffix); any other
    keyword is stored as written, so fabric_loader stays fabric_loader.
    """
    return ManifestBuilder(**properties)
