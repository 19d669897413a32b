# dag.py
from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Set, Tuple

from .errors import CycleDetected, InvalidGraph, UnsatisfiedInput
from .model import BuildStep


def build_dag(steps: List[BuildStep]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from BuildStep objects.

    Requires:
      - step.name: str (unique)
      - step.needs: names of steps that must run BEFORE this step
    """
    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise InvalidGraph(f"Duplicate step names found: {dupes}", details={"steps": dupes})

    name_set = set(names)
    adj: Dict[str, Set[str]] = {n: set() for n in name_set}
    indeg: Dict[str, int] = {n: 0 for n in name_set}

    for step in steps:
        for dep in step.needs:
            if dep not in name_set:
                raise InvalidGraph(
                    f"Step '{step.name}' needs missing step '{dep}'",
                    details={"step": step.name, "missing": dep, "known": sorted(name_set)},
                )
            # edge dep -> step.name
            if step.name not in adj[dep]:
                adj[dep].add(step.name)
                indeg[step.name] += 1

    return adj, indeg


def topo_order(steps: List[BuildStep]) -> List[BuildStep]:
    """
    Kahn's algorithm with a declaration-order tie-break: among all ready
    steps, the one declared first runs first. Same input -> same order.
    """
    adj, indeg = build_dag(steps)
    indeg = dict(indeg)  # copy (we mutate it)
    index = {s.name: i for i, s in enumerate(steps)}

    ready = [index[n] for n, d in indeg.items() if d == 0]
    heapq.heapify(ready)

    order: List[BuildStep] = []
    while ready:
        step = steps[heapq.heappop(ready)]
        order.append(step)
        for child in adj[step.name]:
            indeg[child] -= 1
            if indeg[child] == 0:
                heapq.heappush(ready, index[child])

    if len(order) != len(steps):
        remaining = [s.name for s in steps if indeg[s.name] > 0]
        raise CycleDetected(
            f"Step graph has a cycle. Stuck steps: {remaining}",
            details={"steps": remaining},
        )

    return order


def topo_levels(ordered: List[BuildStep]) -> List[List[str]]:
    """
    Group an already-ordered step list into "levels" (stages).
    Each stage can run in parallel.
    """
    depth: Dict[str, int] = {}
    levels: List[List[str]] = []
    for step in ordered:
        d = 1 + max((depth[n] for n in step.needs), default=-1)
        depth[step.name] = d
        if d == len(levels):
            levels.append([])
        levels[d].append(step.name)
    return levels


def ancestors(ordered: List[BuildStep]) -> Dict[str, Set[str]]:
    """Transitive predecessor names per step (input must be topologically ordered)."""
    out: Dict[str, Set[str]] = {}
    for step in ordered:
        acc: Set[str] = set()
        for dep in step.needs:
            acc.add(dep)
            acc |= out[dep]
        out[step.name] = acc
    return out


def check_inputs(ordered: List[BuildStep], external: Iterable[str] = ()) -> None:
    """Every input must come from a transitive predecessor or be external."""
    external = set(external)
    by_name = {s.name: s for s in ordered}
    anc = ancestors(ordered)

    for step in ordered:
        available = set(external)
        for name in anc[step.name]:
            available |= by_name[name].outputs
        missing = sorted(step.inputs - available)
        if missing:
            raise UnsatisfiedInput(
                f"Step '{step.name}' consumes artifacts nothing upstream produces: {missing}",
                details={"step": step.name, "missing": missing},
            )


class TaskGraphBuilder:
    """Collects build steps and produces a deterministic execution order."""

    def __init__(self) -> None:
        self._steps: List[BuildStep] = []
        self._external: Set[str] = set()

    def add_step(self, step: BuildStep) -> "TaskGraphBuilder":
        self._steps.append(step)
        return self

    def add_external(self, *refs: str) -> "TaskGraphBuilder":
        self._external.update(refs)
        return self

    def build(self) -> List[BuildStep]:
        ordered = topo_order(self._steps)
        check_inputs(ordered, self._external)
        return ordered

    def levels(self) -> List[List[str]]:
        return topo_levels(self.build())
