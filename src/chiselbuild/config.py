# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_BUILD_DIR = "build"
DEFAULT_RUNS_DIR = "../../../.runs"
DEFAULT_TASK_COMMAND = "./gradlew :{version}-{variant}:{task}"
DEFAULT_VERSION_SUFFIX = "playtesting"


@dataclass(frozen=True)
class PlannerConfig:
    """
    Settings constructed once at startup and passed to the planner and runner.

    task_command is a str.format template with {version}, {variant} and
    {task}; it is how shell steps hand off to the external toolchain.
    """
    build_dir: str = DEFAULT_BUILD_DIR
    runs_dir: str = DEFAULT_RUNS_DIR
    task_command: str = DEFAULT_TASK_COMMAND
    version_suffix: str = DEFAULT_VERSION_SUFFIX
    max_workers: Optional[int] = None
    fail_fast: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "PlannerConfig":
        env = os.environ if environ is None else environ
        cfg = cls(
            build_dir=env.get("CHISEL_BUILD_DIR", DEFAULT_BUILD_DIR),
            task_command=env.get("CHISEL_TASK_COMMAND", DEFAULT_TASK_COMMAND),
            version_suffix=env.get("CHISEL_VERSION_SUFFIX", DEFAULT_VERSION_SUFFIX),
            max_workers=int(env["CHISEL_WORKERS"]) if env.get("CHISEL_WORKERS") else None,
        )
        # CLI flags win over the environment; None means "not given"
        return replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
