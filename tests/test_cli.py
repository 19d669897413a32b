from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from chiselbuild.cli import cli


MANIFEST_SRC = '''
from chiselbuild.dsl import implementation, project, runtime_only

def manifest():
    return (
        project(mod_id="demo", mod_version="0.3.0")
        .variant("fabric")
        .variant("forge")
        .versions("1.20.1", "1.21")
        .java(">=1.20.5", 21)
        .common(implementation("com.mojang:minecraft:${minecraft}"))
        .for_variant("fabric", runtime_only("org.anarres:jcpp:1.4.14"))
        .build()
    )
'''


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    path = tmp_path / "chisel_manifest.py"
    path.write_text(MANIFEST_SRC, encoding="utf-8")
    return path


def test_plan_text(manifest_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["plan", "--manifest", str(manifest_path), "--variant", "fabric", "--version", "1.21", "--levels"]
    )
    assert result.exit_code == 0, result.output
    assert "PLAN 1.21-fabric" in result.output
    assert "Java: 21" in result.output
    assert "1. processResources [resources]" in result.output
    assert "Stages:" in result.output


def test_plan_json(manifest_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["plan", "--manifest", str(manifest_path), "--variant", "forge", "--version", "1.20.1", "--json"]
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["name"] == "1.20.1-forge"
    assert data["settings"]["java_level"] == 17
    assert data["constants"]["forge"] is True
    assert data["steps"][-1]["name"] == "buildAndCollect"


def test_plan_all_json(manifest_path: Path) -> None:
    result = CliRunner().invoke(cli, ["plan", "--manifest", str(manifest_path), "--all", "--json"])
    assert result.exit_code == 0, result.output
    assert [p["name"] for p in json.loads(result.stdout)] == [
        "1.20.1-fabric",
        "1.20.1-forge",
        "1.21-fabric",
        "1.21-forge",
    ]


def test_plan_requires_variant_when_ambiguous(manifest_path: Path) -> None:
    result = CliRunner().invoke(cli, ["plan", "--manifest", str(manifest_path), "--version", "1.21"])
    assert result.exit_code == 2
    assert "--variant is required" in result.output


def test_plan_unknown_variant_exits_1(manifest_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["plan", "--manifest", str(manifest_path), "--variant", "quilt", "--version", "1.21"]
    )
    assert result.exit_code == 1
    assert "UnknownVariant" in result.output


def test_deps_json(manifest_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["deps", "--manifest", str(manifest_path), "--variant", "fabric", "--version", "1.21", "--json"]
    )
    assert result.exit_code == 0, result.output
    deps = json.loads(result.stdout)["1.21-fabric"]
    assert [(d["coordinate"], d["scope"]) for d in deps] == [
        ("com.mojang:minecraft:1.21", "compile"),
        ("org.anarres:jcpp:1.4.14", "runtime"),
    ]


def test_variants(manifest_path: Path) -> None:
    result = CliRunner().invoke(cli, ["variants", "--manifest", str(manifest_path)])
    assert result.exit_code == 0, result.output
    assert "fabric: fabric" in result.output
    assert "forge: forge" in result.output
    assert "versions: 1.20.1, 1.21" in result.output


def test_eval() -> None:
    runner = CliRunner()
    ok = runner.invoke(cli, ["eval", ">=1.20.5", "1.21"])
    assert ok.exit_code == 0
    assert ok.output.strip() == "true"

    no = runner.invoke(cli, ["eval", ">=1.20.5", "1.20.4"])
    assert no.exit_code == 1
    assert no.output.strip() == "false"

    bad = runner.invoke(cli, ["eval", ">=1.20.5", "1.x"])
    assert bad.exit_code == 1
    assert "MalformedVersion" in bad.output

    # superscript digits are not version digits
    sup = runner.invoke(cli, ["eval", ">=1.20", "1.\u00b2"])
    assert sup.exit_code == 1
    assert sup.exception is None or isinstance(sup.exception, SystemExit)
    assert "MalformedVersion" in sup.output


def test_run_reports_failures(manifest_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        [
            "run",
            "--manifest", str(manifest_path),
            "--variant", "fabric",
            "--version", "1.21",
            "--task-command", "exit 7",
            "--workers", "2",
        ],
    )
    assert result.exit_code == 1
    assert "RESULTS 1.21-fabric" in result.output
    assert "compileJava: FAILED" in result.output
    assert "jar: SKIPPED(UPSTREAM)" in result.output


def test_missing_manifest(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["plan", "--manifest", str(tmp_path / "nope.py")])
    assert result.exit_code == 1
    assert "Manifest file not found" in result.output
