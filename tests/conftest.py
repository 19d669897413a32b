"""Shared test fixtures."""

from __future__ import annotations

import pytest

from chiselbuild.config import PlannerConfig
from chiselbuild.dsl import implementation, project, run_config, runtime_only
from chiselbuild.model import Manifest
from chiselbuild.planner import Planner
from chiselbuild.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def quiet_console() -> None:
    set_console(Console(debug=False))


@pytest.fixture
def manifest() -> Manifest:
    """A two-loader, two-version manifest that needs nothing on disk."""
    return (
        project(mod_id="locomotion", mod_version="1.0.0")
        .variant("fabric")
        .variant("neoforge", "experimental")
        .versions("1.20.4", "1.21.1")
        .version_props("1.20.4", fabric_loader="0.15.11", neoforge_version="20.4.237")
        .version_props("1.21.1", fabric_loader="0.16.5", neoforge_version="21.1.66")
        .repositories("https://maven.terraformersmc.com/")
        .java(">=1.20.5", 21)
        .java_default(17)
        .common(implementation("com.mojang:minecraft:${minecraft}"))
        .for_variant(
            "fabric",
            implementation("net.fabricmc:fabric-loader:${fabric_loader}"),
            runtime_only("org.anarres:jcpp:1.4.14"),
        )
        .for_variant("neoforge", implementation("net.neoforged:neoforge:${neoforge_version}"))
        .runs(run_config("client", args=["--username=Dev"]), run_config("server"))
        .resources("fabric.mod.json", "${mod.id}-${loader}.mixin.json")
        .build()
    )


@pytest.fixture
def planner() -> Planner:
    return Planner(PlannerConfig(task_command="echo {version} {variant} {task}"))
