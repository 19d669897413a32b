# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from chiselbuild.config import PlannerConfig
from chiselbuild.dag import topo_levels
from chiselbuild.errors import PlanError
from chiselbuild.manifest import DEFAULT_MANIFEST, find_manifest, load_manifest
from chiselbuild.model import Manifest
from chiselbuild.planner import Planner, plan_to_dict
from chiselbuild.registry import VariantRegistry
from chiselbuild.runner import any_failed, run_plan
from chiselbuild.ui.console import Console, get_console, set_console
from chiselbuild.versions import evaluate


def discover_manifest(manifest_arg: str | None) -> Path:
    """
    Discover manifest file from argument or default.

    Raises:
        SystemExit: If the manifest cannot be found
    """
    console = get_console()

    if manifest_arg:
        manifest_path = Path(manifest_arg)
        if not manifest_path.exists() and manifest_path.suffix != ".py":
            manifest_path = Path(str(manifest_path) + ".py")
        if not manifest_path.exists():
            console.print_error(
                "Manifest file not found",
                f"Could not find manifest file: {manifest_arg}",
                suggestion="Create a manifest file or specify a different path:\n  chisel plan --manifest my_manifest.py",
            )
            sys.exit(1)
        return manifest_path

    found = find_manifest(".")
    if found is None:
        console.print_error(
            "No manifest file found",
            "Could not find a manifest in the current directory.",
            details=[f"Looked for: {DEFAULT_MANIFEST}"],
            suggestion=f"Create {DEFAULT_MANIFEST} or specify one explicitly:\n  chisel plan --manifest my_manifest.py",
        )
        sys.exit(1)
    return found


def _fail_plan(ctx, e: PlanError) -> None:
    console = get_console()
    console.print_error(e.kind, e.message, details=[f"{k}={v}" for k, v in e.details.items()] or None)
    if ctx.obj.get("debug", False):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def _load(ctx, manifest_arg: str | None) -> Manifest:
    path = discover_manifest(manifest_arg)
    try:
        manifest = load_manifest(path)
    except PlanError as e:
        _fail_plan(ctx, e)
    except Exception as e:
        get_console().print_error(
            "Failed to load manifest",
            f"Could not load manifest from {path}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)
    get_console().print_debug(f"Loaded manifest {path}")
    return manifest


def _plans(planner: Planner, manifest: Manifest, variant: str | None, version: str | None, all_: bool):
    if all_:
        return planner.plan_matrix(manifest)

    if variant is None:
        ids = list(manifest.variants)
        if len(ids) != 1:
            raise click.UsageError(f"--variant is required (one of: {', '.join(ids)})")
        variant = ids[0]
    if version is None:
        if len(manifest.versions) != 1:
            raise click.UsageError("--version is required when the manifest declares several versions")
        version = manifest.versions[0]
    return [planner.plan(manifest, variant, version)]


def _config(**overrides) -> PlannerConfig:
    return PlannerConfig.from_env(**overrides)


target_options = [
    click.option("--manifest", default=None, help=f"Manifest file path (defaults to {DEFAULT_MANIFEST})"),
    click.option("--variant", default=None, help="Variant (platform) to plan, e.g. fabric"),
    click.option("--version", "target", default=None, help="Target game version, e.g. 1.21"),
    click.option("--all", "all_", is_flag=True, default=False, help="Plan every version x variant"),
    click.option("--build-dir", default=None, help="Build output directory"),
    click.option("--task-command", default=None, help="Command template for toolchain steps"),
]


def with_target_options(fn):
    for opt in reversed(target_options):
        fn = opt(fn)
    return fn


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """chisel: deterministic multi-version variant build planner."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@with_target_options
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit the plan as JSON")
@click.option("--levels/--no-levels", default=False, show_default=True, help="Show parallel stages")
@click.pass_context
def plan(ctx, manifest, variant, target, all_, build_dir, task_command, as_json, levels):
    """Print the ordered build plan."""
    console = get_console()
    mf = _load(ctx, manifest)
    planner = Planner(_config(build_dir=build_dir, task_command=task_command))

    try:
        plans = _plans(planner, mf, variant, target, all_)
    except PlanError as e:
        _fail_plan(ctx, e)

    if as_json:
        payload = [plan_to_dict(p) for p in plans]
        click.echo(json.dumps(payload if all_ else payload[0], indent=2))
        return

    for p in plans:
        console.print_plan(p, levels=topo_levels(p.steps) if levels else None)


@cli.command()
@with_target_options
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit dependencies as JSON")
@click.pass_context
def deps(ctx, manifest, variant, target, all_, build_dir, task_command, as_json):
    """Print the resolved dependency set."""
    console = get_console()
    mf = _load(ctx, manifest)
    planner = Planner(_config(build_dir=build_dir, task_command=task_command))

    try:
        plans = _plans(planner, mf, variant, target, all_)
    except PlanError as e:
        _fail_plan(ctx, e)

    if as_json:
        payload = {p.name: plan_to_dict(p)["dependencies"] for p in plans}
        click.echo(json.dumps(payload, indent=2))
        return

    for p in plans:
        console.print_dependencies(p)


@cli.command()
@with_target_options
@click.option("--workers", default=None, type=int, help="Number of parallel workers")
@click.option("--fail-fast/--no-fail-fast", default=False, show_default=True, help="Stop scheduling new steps after first failure")
@click.pass_context
def run(ctx, manifest, variant, target, all_, build_dir, task_command, workers, fail_fast):
    """Plan, then execute the steps through the external toolchain."""
    console = get_console()
    mf = _load(ctx, manifest)
    config = _config(build_dir=build_dir, task_command=task_command, max_workers=workers, fail_fast=fail_fast)
    planner = Planner(config)

    try:
        plans = _plans(planner, mf, variant, target, all_)
    except PlanError as e:
        _fail_plan(ctx, e)

    failed = False
    try:
        for p in plans:
            console.print_header(f"RUN {p.name}")
            results = run_plan(
                p,
                project_root=mf.root or ".",
                max_workers=config.max_workers,
                fail_fast=config.fail_fast,
            )
            console.print_results(results, title=f"RESULTS {p.name}")
            failed = failed or any_failed(results)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    if failed:
        sys.exit(1)


@cli.command(name="eval")
@click.argument("predicate")
@click.argument("version")
@click.pass_context
def eval_cmd(ctx, predicate, version):
    """Evaluate a version PREDICATE (e.g. '>=1.20.5') against VERSION."""
    try:
        result = evaluate(predicate, version)
    except PlanError as e:
        _fail_plan(ctx, e)
    click.echo("true" if result else "false")
    if not result:
        sys.exit(1)


@cli.command()
@click.option("--manifest", default=None, help=f"Manifest file path (defaults to {DEFAULT_MANIFEST})")
@click.pass_context
def variants(ctx, manifest):
    """List declared variants and their source constants."""
    mf = _load(ctx, manifest)
    registry = VariantRegistry.from_manifest(mf)
    for v in registry.variants():
        on = [k for k, val in v.constants().items() if val]
        click.echo(f"{v.id}: {', '.join(on)}")
    if mf.versions:
        click.echo(f"versions: {', '.join(mf.versions)}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
