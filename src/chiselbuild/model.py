# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


class Loader(Enum):
    """Mod-loader platforms a variant can target."""
    FABRIC = "fabric"
    FORGE = "forge"
    NEOFORGE = "neoforge"

    @classmethod
    def parse(cls, value: str) -> Optional["Loader"]:
        for loader in cls:
            if loader.value == value:
                return loader
        return None


@dataclass(frozen=True)
class Variant:
    """A named build target configuration (one mod-loader platform)."""
    id: str
    flags: frozenset = field(default_factory=frozenset)
    loader: Optional[Loader] = None

    def constants(self) -> Dict[str, bool]:
        """
        Boolean source constants for this variant.

        Every known loader gets a key (true only for our own loader), then the
        variant's own flags are switched on.
        """
        consts = {loader.value: loader is self.loader for loader in Loader}
        for flag in sorted(self.flags):
            consts[flag] = True
        return consts


@dataclass(frozen=True, order=True)
class TargetVersion:
    # `segments` first so ordering compares numbers, not the raw string
    segments: Tuple[int, ...]
    raw: str = field(compare=False)

    def __str__(self) -> str:
        return self.raw


class Scope(Enum):
    COMPILE = "compile"
    RUNTIME = "runtime"
    DEV_ONLY = "dev-only"


@dataclass(frozen=True)
class DependencySpec:
    """A single dependency coordinate (group:artifact:version or project path)."""
    coordinate: str
    scope: Scope = Scope.COMPILE
    transitive: bool = True
    # explicit marker: this entry replaces a common entry even if scopes differ
    override: bool = False


class DependencySet:
    """
    Ordered, coordinate-unique collection of DependencySpec.

    Adding a spec whose coordinate is already present replaces the old entry
    in place. Equality ignores order.
    """

    def __init__(self, specs: Iterable[DependencySpec] = ()):
        self._specs: Dict[str, DependencySpec] = {}
        for spec in specs:
            self.add(spec)

    def add(self, spec: DependencySpec) -> None:
        self._specs[spec.coordinate] = spec

    def get(self, coordinate: str) -> Optional[DependencySpec]:
        return self._specs.get(coordinate)

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self._specs

    def __iter__(self) -> Iterator[DependencySpec]:
        return iter(list(self._specs.values()))

    def __len__(self) -> int:
        return len(self._specs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencySet):
            return NotImplemented
        return self._specs == other._specs

    def __repr__(self) -> str:
        return f"DependencySet({list(self._specs.values())!r})"


@dataclass(frozen=True)
class BuildStep:
    """
    One node of the build DAG.

    `needs` lists predecessor step names. `inputs`/`outputs` are artifact
    references (paths relative to the project root).
    """
    name: str
    inputs: frozenset = field(default_factory=frozenset)
    outputs: frozenset = field(default_factory=frozenset)
    needs: Tuple[str, ...] = ()
    run: str | None = None
    kind: str = "shell"          # shell | collect | resources | noop
    data: Dict[str, object] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Repository:
    name: str
    url: str


@dataclass(frozen=True)
class RunConfig:
    """IDE/dev launch configuration (client or server)."""
    name: str
    side: str
    run_dir: str
    program_args: Tuple[str, ...] = ()
    ide_generated: bool = True


@dataclass
class Manifest:
    """
    Declarative description of a multi-version, multi-loader build.

    `properties` are project-level (mod.id, mod.version, ...). Per-version
    properties are loaded separately from versions/<version>/gradle.properties.
    """
    properties: Dict[str, str] = field(default_factory=dict)
    variants: Dict[str, List[str]] = field(default_factory=dict)   # id -> flags
    versions: List[str] = field(default_factory=list)
    common: List[DependencySpec] = field(default_factory=list)
    per_variant: Dict[str, List[DependencySpec]] = field(default_factory=dict)
    repositories: List[Repository] = field(default_factory=list)
    run_configs: List[RunConfig] = field(default_factory=list)

    # (predicate, java level) evaluated in order; first match wins
    java_rules: List[Tuple[str, int]] = field(default_factory=list)
    java_default: int = 17

    # resource files that get ${key} expansion
    resources: List[str] = field(default_factory=list)

    # extra steps declared by the manifest, appended after the standard pipeline
    steps: List[BuildStep] = field(default_factory=list)

    # per-version property overrides (normally read from disk)
    version_properties: Dict[str, Dict[str, str]] = field(default_factory=dict)

    # directory the manifest was loaded from (set by the loader)
    root: Optional[str] = None


@dataclass(frozen=True)
class BuildSettings:
    java_level: int
    archive_name: str
    artifact_version: str
    output_dir: str
    generated_resources: str


@dataclass
class BuildPlan:
    """Everything the external executor needs for one (version, variant) pair."""
    variant: Variant
    version: TargetVersion
    settings: BuildSettings
    constants: Dict[str, bool]
    dependencies: DependencySet
    classpaths: Dict[str, List[str]]
    steps: List[BuildStep]
    repositories: List[Repository] = field(default_factory=list)
    run_configs: List[RunConfig] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    fingerprint: str = ""

    @property
    def name(self) -> str:
        return f"{self.version}-{self.variant.id}"
