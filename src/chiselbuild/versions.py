# versions.py
from __future__ import annotations

import re
from typing import Iterable, Tuple, TypeVar, Union

from .errors import MalformedVersion
from .model import TargetVersion

T = TypeVar("T")

VersionLike = Union[str, TargetVersion]

# longest operators first so ">=" is not read as ">"
_COMPARISON_RE = re.compile(r"^(>=|<=|==|!=|>|<|=)?(.*)$")

_OPS = {
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    "=": lambda a, b: a == b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def parse_version(raw: VersionLike) -> TargetVersion:
    """
    Parse a dotted numeric version ("1.20.5") into a TargetVersion.

    Segments compare numerically; when one version is a prefix of the other
    the shorter one sorts first ("1.20" < "1.20.5" < "1.21").
    """
    if isinstance(raw, TargetVersion):
        return raw

    text = (raw or "").strip()
    if not text:
        raise MalformedVersion("Empty version string", details={"version": raw})

    segments = []
    for part in text.split("."):
        # str.isdigit also accepts non-ASCII digits such as "²"
        if not (part.isascii() and part.isdigit()):
            raise MalformedVersion(
                f"Version '{text}' has a non-numeric segment",
                details={"version": text, "segment": part},
            )
        segments.append(int(part))

    return TargetVersion(segments=tuple(segments), raw=text)


def compare(a: VersionLike, b: VersionLike) -> int:
    va, vb = parse_version(a), parse_version(b)
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def _parse_comparison(token: str) -> Tuple[str, TargetVersion]:
    m = _COMPARISON_RE.match(token)
    op = (m.group(1) if m else None) or "="
    rest = m.group(2) if m else token
    if not rest or rest[0] in "<>=!":
        raise MalformedVersion(
            f"Unknown comparison '{token}'",
            details={"token": token},
        )
    return op, parse_version(rest)


def evaluate(predicate: str, target: VersionLike) -> bool:
    """
    Evaluate a version predicate against a target version.

    Grammar:
      predicate   := conjunction ("||" conjunction)*
      conjunction := comparison (whitespace comparison)*
      comparison  := [">=" | "<=" | ">" | "<" | "=" | "==" | "!="] version

    Example: evaluate(">=1.20.5 <1.21", "1.20.6") -> True
    """
    if not predicate or not predicate.strip():
        raise MalformedVersion("Empty predicate", details={"predicate": predicate})

    version = parse_version(target)

    alternatives = [alt.strip() for alt in predicate.split("||")]
    if any(not alt for alt in alternatives):
        raise MalformedVersion("Empty alternative in predicate", details={"predicate": predicate})

    # parse everything first so a malformed tail is reported even when an
    # earlier alternative already matched
    parsed = [[_parse_comparison(tok) for tok in alt.split()] for alt in alternatives]

    return any(
        all(_OPS[op](version, bound) for op, bound in conj)
        for conj in parsed
    )


def select_value(rules: Iterable[Tuple[str, T]], target: VersionLike, default: T) -> T:
    """Return the value of the first rule whose predicate holds for `target`."""
    for predicate, value in rules:
        if evaluate(predicate, target):
            return value
    return default


class ConditionEvaluator:
    """Evaluator bound to a single target version (one per plan)."""

    def __init__(self, target: VersionLike):
        self.target = parse_version(target)

    def evaluate(self, predicate: str) -> bool:
        return evaluate(predicate, self.target)

    def select(self, rules: Iterable[Tuple[str, T]], default: T) -> T:
        return select_value(rules, self.target, default)
