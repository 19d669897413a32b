from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import List

import pytest

from chiselbuild.config import PlannerConfig
from chiselbuild.dag import topo_order
from chiselbuild.dsl import step
from chiselbuild.model import BuildPlan, BuildSettings, BuildStep, DependencySet, TargetVersion, Variant
from chiselbuild.planner import Planner
from chiselbuild.runner import (
    FAILED,
    OK,
    SKIPPED_FAIL_FAST,
    SKIPPED_UPSTREAM,
    OutputLocks,
    any_failed,
    run_plan,
    run_step,
)


def _plan(steps: List[BuildStep]) -> BuildPlan:
    return BuildPlan(
        variant=Variant(id="fabric"),
        version=TargetVersion(segments=(1, 21), raw="1.21"),
        settings=BuildSettings(
            java_level=21,
            archive_name="demo-fabric",
            artifact_version="1.0+1.21",
            output_dir="out",
            generated_resources="versions/1.21/src/main/generated",
        ),
        constants={},
        dependencies=DependencySet(),
        classpaths={},
        steps=topo_order(steps),
    )


def test_shell_steps_run_in_order(tmp_path: Path) -> None:
    plan = _plan([
        step("compile", "echo compile >> log.txt"),
        step("shade", "echo shade >> log.txt", needs=["compile"]),
        step("remap", "echo remap-$CHISEL_VARIANT >> log.txt", needs=["shade"]),
    ])

    results = run_plan(plan, project_root=tmp_path, max_workers=4)

    assert results == {"compile": OK, "shade": OK, "remap": OK}
    assert (tmp_path / "log.txt").read_text().split() == ["compile", "shade", "remap-fabric"]


def test_failure_blocks_dependents_but_not_independent_branches(tmp_path: Path) -> None:
    plan = _plan([
        step("compile", "exit 3"),
        step("shade", "true", needs=["compile"]),
        step("remap", "true", needs=["shade"]),
        step("sources", "touch sources.ok"),
        step("other", "exit 1"),
    ])

    results = run_plan(plan, project_root=tmp_path, max_workers=2)

    assert results == {
        "compile": FAILED,
        "shade": SKIPPED_UPSTREAM,
        "remap": SKIPPED_UPSTREAM,
        "sources": OK,
        "other": FAILED,
    }
    assert (tmp_path / "sources.ok").exists()
    assert any_failed(results)


def test_fail_fast_stops_scheduling(tmp_path: Path) -> None:
    plan = _plan([
        step("broken", "exit 1"),
        step("later", "touch later.ok", needs=["gate"]),
        step("gate", "sleep 0.2"),
    ])

    results = run_plan(plan, project_root=tmp_path, max_workers=1, fail_fast=True)

    assert results["broken"] == FAILED
    assert results["later"] == SKIPPED_FAIL_FAST
    assert not (tmp_path / "later.ok").exists()


def test_fail_fast_leaves_ready_steps_unrun(tmp_path: Path) -> None:
    plan = _plan([
        step("broken", "exit 1"),
        step("ready", "touch ready.ok"),
    ])

    results = run_plan(plan, project_root=tmp_path, max_workers=1, fail_fast=True)

    assert results == {"broken": FAILED, "ready": SKIPPED_FAIL_FAST}
    assert not (tmp_path / "ready.ok").exists()


def test_collect_and_resources_steps(tmp_path: Path, manifest) -> None:
    (tmp_path / "src" / "main" / "resources").mkdir(parents=True)
    (tmp_path / "src" / "main" / "resources" / "fabric.mod.json").write_text(
        '{"id": "${mod.id}", "version": "${version}"}', encoding="utf-8"
    )
    (tmp_path / "src" / "main" / "resources" / "locomotion-fabric.mixin.json").write_text(
        '{"package": "${mod.id}.mixin"}', encoding="utf-8"
    )

    # toolchain steps just create the artifacts they promise
    planner = Planner(PlannerConfig(task_command="true"))
    plan = planner.plan(manifest, "fabric", "1.21.1")
    steps = []
    for s in plan.steps:
        if s.kind == "shell":
            touches = " && ".join(f"mkdir -p $(dirname '{o}') && touch '{o}'" for o in sorted(s.outputs))
            s = BuildStep(**{**s.__dict__, "run": touches})
        steps.append(s)
    plan.steps = steps

    results = run_plan(plan, project_root=tmp_path, max_workers=3)

    assert set(results.values()) == {OK}
    processed = tmp_path / "build" / "1.21.1-fabric" / "resources" / "main" / "fabric.mod.json"
    assert processed.read_text() == '{"id": "locomotion", "version": "1.0.0+1.21.1-playtesting"}'
    collected = sorted(p.name for p in (tmp_path / "build" / "libs" / "1.0.0" / "fabric").iterdir())
    assert collected == [
        "locomotion-fabric-1.0.0+1.21.1-playtesting-sources.jar",
        "locomotion-fabric-1.0.0+1.21.1-playtesting.jar",
    ]


def test_unknown_step_kind_fails(tmp_path: Path) -> None:
    plan = _plan([step("weird", kind="teleport")])
    assert run_plan(plan, project_root=tmp_path) == {"weird": FAILED}


def test_shell_step_without_command(tmp_path: Path) -> None:
    bare = BuildStep(name="bare")
    with pytest.raises(ValueError, match="no command"):
        run_step(bare, _plan([bare]), tmp_path, {})
    assert run_plan(_plan([bare]), project_root=tmp_path) == {"bare": FAILED}


def test_output_locks_are_exclusive() -> None:
    locks = OutputLocks()
    active = []
    overlaps = []

    def writer() -> None:
        with locks.hold(["build/libs/app.jar", "build/tmp"]):
            active.append(1)
            if len(active) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []


def test_output_locks_release_on_error() -> None:
    locks = OutputLocks()
    with pytest.raises(RuntimeError):
        with locks.hold(["a"]):
            raise RuntimeError("boom")
    with locks.hold(["a"]):
        pass
