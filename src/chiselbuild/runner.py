# runner.py
from __future__ import annotations

import os
import shutil
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Set

from .dag import build_dag
from .errors import StepFailure
from .model import BuildPlan, BuildStep
from .resources import expand_resources
from .ui.console import get_console

OK = "ok"
FAILED = "failed"
SKIPPED_UPSTREAM = "skipped(upstream)"
SKIPPED_FAIL_FAST = "skipped(fail-fast)"


class OutputLocks:
    """
    Exclusive, scoped acquisition of output paths.

    Two steps that write the same artifact never run their writes at the
    same time. Locks are taken in sorted order so overlapping sets cannot
    deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, path: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, paths: Iterable[str]) -> Iterator[None]:
        locks = [self._lock_for(p) for p in sorted(set(paths))]
        acquired: List[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def plan_env(plan: BuildPlan) -> Dict[str, str]:
    env = os.environ.copy()
    env["CHISEL_VARIANT"] = plan.variant.id
    env["CHISEL_VERSION"] = plan.version.raw
    env["CHISEL_JAVA"] = str(plan.settings.java_level)
    env["CHISEL_ARTIFACT_VERSION"] = plan.settings.artifact_version
    return env


def _run_shell(step: BuildStep, root: Path, env: Dict[str, str]) -> None:
    if not step.run:
        raise ValueError(f"step '{step.name}': shell step has no command")
    proc = subprocess.run(
        step.run,
        shell=True,
        cwd=str(root),
        env=env,
        text=True,
        capture_output=True,   # so we can show output on failure
    )
    if proc.returncode != 0:
        raise StepFailure(
            step=step.name,
            cmd=step.run or "",
            exit_code=proc.returncode,
            stdout=proc.stdout[-4000:],
            stderr=proc.stderr[-4000:],
        )


def _run_collect(step: BuildStep, root: Path) -> None:
    into = root / str(step.data["into"])
    into.mkdir(parents=True, exist_ok=True)
    for rel in step.data.get("files", []):
        src = root / str(rel)
        if not src.is_file():
            raise FileNotFoundError(f"step '{step.name}': artifact not found: {src}")
        shutil.copy2(src, into / src.name)


def _run_resources(step: BuildStep, plan: BuildPlan, root: Path) -> None:
    expand_resources(
        root / str(step.data["src"]),
        root / str(step.data["dest"]),
        step.data.get("templates", []),
        plan.properties,
    )


def run_step(step: BuildStep, plan: BuildPlan, root: Path, env: Dict[str, str]) -> None:
    if step.kind == "shell":
        _run_shell(step, root, env)
    elif step.kind == "collect":
        _run_collect(step, root)
    elif step.kind == "resources":
        _run_resources(step, plan, root)
    elif step.kind == "noop":
        return
    else:
        raise ValueError(f"step '{step.name}': unknown kind '{step.kind}'")


def _descendants(name: str, adj: Dict[str, Set[str]]) -> Set[str]:
    out: Set[str] = set()
    stack = [name]
    while stack:
        for nxt in adj[stack.pop()]:
            if nxt not in out:
                out.add(nxt)
                stack.append(nxt)
    return out


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_plan(
    plan: BuildPlan,
    *,
    project_root: str | Path = ".",
    max_workers: int | None = None,
    fail_fast: bool = False,
) -> Dict[str, str]:
    """
    Execute a plan. Steps with no mutual dependency run in parallel.

    A failed step marks every step depending on it 'skipped(upstream)';
    independent branches keep running so all failures show up in one run.
    With fail_fast nothing new is scheduled after the first failure.

    Returns {step name: status} in plan order.
    """
    console = get_console()
    root = Path(project_root).resolve()
    env = plan_env(plan)
    locks = OutputLocks()

    by_name = {s.name: s for s in plan.steps}
    adj, indeg = build_dag(plan.steps)
    order = {s.name: i for i, s in enumerate(plan.steps)}

    # keep declaration order among ready steps
    ready: List[str] = sorted((n for n, d in indeg.items() if d == 0), key=order.__getitem__)
    results: Dict[str, str] = {}
    failed = False

    if max_workers is None:
        c = os.cpu_count() or 2
        max_workers = max(1, c - 1)

    def _execute(step: BuildStep) -> None:
        with locks.hold(step.outputs):
            console.print_step(plan.name, step.name)
            run_step(step, plan, root, env)

    in_flight: Dict = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        while ready or in_flight:
            # schedule ready steps onto free workers only, so nothing sits in
            # the pool queue when fail_fast stops scheduling
            while ready and len(in_flight) < max_workers and not (fail_fast and failed):
                name = ready.pop(0)
                fut = pool.submit(_execute, by_name[name])
                in_flight[fut] = name

            if not in_flight:
                break

            # wait for one completion, then loop to schedule newly-ready steps
            fut = next(as_completed(list(in_flight.keys())))
            name = in_flight.pop(fut)

            try:
                fut.result()
                results[name] = OK
            except Exception as e:
                results[name] = FAILED
                failed = True
                reason = str(e)
                if isinstance(e, StepFailure) and e.stderr:
                    reason += "\n" + e.stderr
                console.print_failure(name, reason, exit_code=getattr(e, "exit_code", None))
                for blocked in _descendants(name, adj):
                    results.setdefault(blocked, SKIPPED_UPSTREAM)
                continue

            # unlock dependents only on success
            newly: List[str] = []
            for nxt in adj[name]:
                indeg[nxt] -= 1
                if indeg[nxt] == 0 and nxt not in results:
                    newly.append(nxt)
            ready.extend(newly)
            ready.sort(key=order.__getitem__)

    for step in plan.steps:
        results.setdefault(step.name, SKIPPED_FAIL_FAST)

    return {s.name: results[s.name] for s in plan.steps}


def any_failed(results: Dict[str, str]) -> bool:
    return any(v == FAILED for v in results.values())
