# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict


# ----------------------------------------------------------------------
# Planning errors
# ----------------------------------------------------------------------

@dataclass
class PlanError(Exception):
    """
    Structured planning error with enough context for:
      - clean CLI output
      - JSON rendering (kind + details)
      - debugging without full tracebacks

    Planning is all-or-nothing: any PlanError means no plan was produced.
    """
    message: str
    details: Dict[str, object] = field(default_factory=dict)

    kind: ClassVar[str] = "PlanError"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class UnknownVariant(PlanError):
    kind = "UnknownVariant"


class MalformedVersion(PlanError):
    kind = "MalformedVersion"


class ConflictingScope(PlanError):
    kind = "ConflictingScope"


class CycleDetected(PlanError):
    kind = "CycleDetected"


class MissingProperty(PlanError):
    kind = "MissingProperty"


class InvalidGraph(PlanError):
    """Duplicate step names or predecessors that were never declared."""
    kind = "InvalidGraph"


class UnsatisfiedInput(PlanError):
    kind = "UnsatisfiedInput"


class ManifestError(PlanError):
    kind = "ManifestError"


# ----------------------------------------------------------------------
# Execution errors
# ----------------------------------------------------------------------

@dataclass
class StepFailure(Exception):
    step: str
    cmd: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        return f"step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"
