# planner.py
from __future__ import annotations

import hashlib
import json
from dataclasses import replace
from typing import Dict, List

from .compose import COMMON_BUNDLE, SHADOW_BUNDLE, DependencyComposer, classpaths
from .config import PlannerConfig
from .dag import TaskGraphBuilder
from .errors import ManifestError, MissingProperty
from .manifest import version_properties
from .model import (
    BuildPlan,
    BuildSettings,
    BuildStep,
    Manifest,
    TargetVersion,
    Variant,
)
from .registry import VariantRegistry
from .resources import template_names
from .versions import ConditionEvaluator, parse_version

SOURCES = "src/main/java"
RESOURCES = "src/main/resources"


def _stable_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _require(props: Dict[str, str], key: str) -> str:
    value = props.get(key)
    if not value:
        raise MissingProperty(f"Required property '{key}' is not set", details={"property": key})
    return value


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


class Planner:
    """
    Turns a manifest into build plans.

    Planning is all-or-nothing: every error propagates as a PlanError and
    no partial plan is returned.
    """

    def __init__(self, config: PlannerConfig | None = None):
        self.config = config or PlannerConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, manifest: Manifest, variant_id: str, version: str) -> BuildPlan:
        registry = VariantRegistry.from_manifest(manifest)
        variant = registry.select(variant_id)
        target = parse_version(version)

        props = self._properties(manifest, variant, target)
        settings = self._settings(manifest, variant, target, props)

        composer = DependencyComposer(props)
        resolved = composer.compose(manifest.common, manifest.per_variant.get(variant.id, []))

        common_project = props.get("common.project", ":common")
        bundles = {
            COMMON_BUNDLE: [f"{common_project}@namedElements"],
            SHADOW_BUNDLE: [f"{common_project}@transformProduction{_capitalize(variant.id)}"],
        }

        steps = self._steps(manifest, variant, target, settings, props, bundles)

        plan = BuildPlan(
            variant=variant,
            version=target,
            settings=settings,
            constants=variant.constants(),
            dependencies=resolved,
            classpaths=classpaths(resolved, variant, bundles),
            steps=steps,
            repositories=list(manifest.repositories),
            run_configs=[
                replace(rc, run_dir=f"{self.config.runs_dir}/{rc.run_dir}") for rc in manifest.run_configs
            ],
            properties=props,
        )
        plan.fingerprint = fingerprint(plan)
        return plan

    def plan_matrix(self, manifest: Manifest) -> List[BuildPlan]:
        """One plan per declared version x variant; fails as a whole."""
        if not manifest.versions:
            raise ManifestError("Manifest declares no versions to build")
        registry = VariantRegistry.from_manifest(manifest)
        # a version listed twice is planned once
        versions = list(dict.fromkeys(manifest.versions))
        return [
            self.plan(manifest, variant.id, version)
            for version in versions
            for variant in registry.variants()
        ]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _properties(self, manifest: Manifest, variant: Variant, target: TargetVersion) -> Dict[str, str]:
        props = dict(manifest.properties)
        props.update(version_properties(manifest, target.raw))
        props["minecraft"] = target.raw
        props["loader"] = variant.id
        return props

    def _settings(
        self,
        manifest: Manifest,
        variant: Variant,
        target: TargetVersion,
        props: Dict[str, str],
    ) -> BuildSettings:
        mod_id = _require(props, "mod.id")
        mod_version = _require(props, "mod.version")

        suffix = props.get("mod.version_suffix", self.config.version_suffix)
        artifact_version = f"{mod_version}+{target}"
        if suffix:
            artifact_version += f"-{suffix}"

        java_level = ConditionEvaluator(target).select(manifest.java_rules, manifest.java_default)

        props["version"] = artifact_version
        props["java"] = str(java_level)

        return BuildSettings(
            java_level=java_level,
            archive_name=f"{mod_id}-{variant.id}",
            artifact_version=artifact_version,
            output_dir=f"{self.config.build_dir}/libs/{mod_version}/{variant.id}",
            generated_resources=f"versions/{target}/src/main/generated",
        )

    # ------------------------------------------------------------------
    # Step pipeline
    # ------------------------------------------------------------------

    def _task(self, target: TargetVersion, variant: Variant, task: str) -> str:
        return self.config.task_command.format(version=target.raw, variant=variant.id, task=task)

    def _steps(
        self,
        manifest: Manifest,
        variant: Variant,
        target: TargetVersion,
        settings: BuildSettings,
        props: Dict[str, str],
        bundles: Dict[str, List[str]],
    ) -> List[BuildStep]:
        bd = f"{self.config.build_dir}/{target}-{variant.id}"
        base = f"{settings.archive_name}-{settings.artifact_version}"

        classes = f"{bd}/classes/java/main"
        processed = f"{bd}/resources/main"
        dev_jar = f"{bd}/devlibs/{base}-dev.jar"
        shadow_jar = f"{bd}/devlibs/{base}-dev-shadow.jar"
        remap_jar = f"{bd}/libs/{base}.jar"
        sources_jar = f"{bd}/devlibs/{base}-sources.jar"
        remap_sources_jar = f"{bd}/libs/{base}-sources.jar"
        out = settings.output_dir

        common_bundle = bundles[COMMON_BUNDLE][0]
        shadow_bundle = bundles[SHADOW_BUNDLE][0]

        graph = TaskGraphBuilder()
        graph.add_external(SOURCES, RESOURCES, settings.generated_resources, common_bundle, shadow_bundle)

        def task(name: str, **kw) -> BuildStep:
            return BuildStep(name=name, run=self._task(target, variant, name), **kw)

        graph.add_step(BuildStep(
            name="processResources",
            kind="resources",
            inputs=frozenset({RESOURCES, settings.generated_resources}),
            outputs=frozenset({processed}),
            data={
                "src": RESOURCES,
                "dest": processed,
                "templates": template_names(manifest.resources, props),
            },
        ))
        graph.add_step(task(
            "compileJava",
            inputs=frozenset({SOURCES, common_bundle}),
            outputs=frozenset({classes}),
            data={"release": settings.java_level},
        ))
        graph.add_step(task(
            "jar",
            needs=("compileJava", "processResources"),
            inputs=frozenset({classes, processed}),
            outputs=frozenset({dev_jar}),
            data={"classifier": "dev"},
        ))
        graph.add_step(task(
            "shadowJar",
            needs=("jar",),
            inputs=frozenset({dev_jar, shadow_bundle}),
            outputs=frozenset({shadow_jar}),
            data={"classifier": "dev-shadow", "configurations": [SHADOW_BUNDLE]},
        ))
        graph.add_step(task(
            "remapJar",
            needs=("shadowJar",),
            inputs=frozenset({shadow_jar}),
            outputs=frozenset({remap_jar}),
            data={"classifier": None, "inject_access_widener": True},
        ))
        graph.add_step(task(
            "sourcesJar",
            inputs=frozenset({SOURCES}),
            outputs=frozenset({sources_jar}),
            data={"classifier": "sources"},
        ))
        graph.add_step(task(
            "remapSourcesJar",
            needs=("sourcesJar",),
            inputs=frozenset({sources_jar}),
            outputs=frozenset({remap_sources_jar}),
        ))
        graph.add_step(BuildStep(
            name="build",
            kind="noop",
            needs=("remapJar", "remapSourcesJar"),
        ))
        graph.add_step(BuildStep(
            name="buildAndCollect",
            kind="collect",
            needs=("build",),
            inputs=frozenset({remap_jar, remap_sources_jar}),
            outputs=frozenset({f"{out}/{base}.jar", f"{out}/{base}-sources.jar"}),
            data={"files": [remap_jar, remap_sources_jar], "into": out},
        ))

        for extra in manifest.steps:
            graph.add_step(extra)

        return graph.build()


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------

def step_to_dict(step: BuildStep) -> dict:
    step_dict = {
        "name": step.name,
        "kind": step.kind,
        "needs": list(step.needs),
        "inputs": sorted(step.inputs),
        "outputs": sorted(step.outputs),
    }
    if step.run is not None:
        step_dict["run"] = step.run
    if step.data:
        step_dict["data"] = step.data
    return step_dict


def plan_to_dict(plan: BuildPlan) -> dict:
    """
    Convert a BuildPlan to a JSON-friendly dictionary for the external executor.
    Key order and list order are stable so the output is reproducible.
    """
    return {
        "name": plan.name,
        "variant": plan.variant.id,
        "version": plan.version.raw,
        "constants": plan.constants,
        "settings": {
            "java_level": plan.settings.java_level,
            "archive_name": plan.settings.archive_name,
            "artifact_version": plan.settings.artifact_version,
            "output_dir": plan.settings.output_dir,
            "generated_resources": plan.settings.generated_resources,
        },
        "dependencies": [
            {
                "coordinate": d.coordinate,
                "scope": d.scope.value,
                "transitive": d.transitive,
            }
            for d in plan.dependencies
        ],
        "classpaths": plan.classpaths,
        "repositories": [{"name": r.name, "url": r.url} for r in plan.repositories],
        "runs": [
            {
                "name": r.name,
                "side": r.side,
                "run_dir": r.run_dir,
                "program_args": list(r.program_args),
                "ide_generated": r.ide_generated,
            }
            for r in plan.run_configs
        ],
        "steps": [step_to_dict(s) for s in plan.steps],
        "fingerprint": plan.fingerprint,
    }


def fingerprint(plan: BuildPlan) -> str:
    payload = plan_to_dict(plan)
    payload.pop("fingerprint", None)
    return hashlib.sha256(_stable_json(payload).encode("utf-8")).hexdigest()
