from .dsl import dep, implementation, runtime_only, dev_only, step, repo, run_config, project, ManifestBuilder
from .planner import Planner, plan_to_dict
from .runner import run_plan
from .model import BuildPlan, BuildStep, DependencySet, DependencySpec, Loader, Manifest, Scope, Variant

__all__ = [
    "dep", "implementation", "runtime_only", "dev_only", "step", "repo", "run_config", "project",
    "ManifestBuilder", "Planner", "plan_to_dict", "run_plan",
    "BuildPlan", "BuildStep", "DependencySet", "DependencySpec", "Loader", "Manifest", "Scope", "Variant",
]
