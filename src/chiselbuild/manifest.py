# manifest.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Dict

from .errors import ManifestError
from .model import Manifest

DEFAULT_MANIFEST = "chisel_manifest.py"
PROPERTIES_FILE = "gradle.properties"


# ----------------------------------------------------------------------
# Property files (gradle.properties style)
# ----------------------------------------------------------------------

def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse `key=value` lines.

    - '#' and '!' start comment lines
    - ':' is accepted as separator when there is no '='
    - surrounding whitespace is stripped, later keys win
    """
    props: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line[0] in "#!":
            continue

        sep = "=" if "=" in line else ":" if ":" in line else None
        if sep is None:
            raise ManifestError(
                f"line {lineno}: expected key=value",
                details={"line": raw},
            )
        key, value = line.split(sep, 1)
        key = key.strip()
        if not key:
            raise ManifestError(f"line {lineno}: empty key", details={"line": raw})
        props[key] = value.strip()
    return props


def load_properties(path: str | Path, *, required: bool = False) -> Dict[str, str]:
    p = Path(path)
    if not p.is_file():
        if required:
            raise FileNotFoundError(f"Properties file not found: {p}")
        return {}
    return parse_properties(p.read_text(encoding="utf-8"))


def version_properties(manifest: Manifest, version: str) -> Dict[str, str]:
    """
    Properties for one target version: in-manifest overrides layered on top
    of versions/<version>/gradle.properties (if the manifest has a root).
    """
    props: Dict[str, str] = {}
    if manifest.root:
        props.update(load_properties(Path(manifest.root) / "versions" / version / PROPERTIES_FILE))
    props.update(manifest.version_properties.get(version, {}))
    return props


# ----------------------------------------------------------------------
# Manifest loading (local python file)
# ----------------------------------------------------------------------

def load_manifest(path: str | Path) -> Manifest:
    """
    Load a manifest from a python file path.

    The file must define either:
      - manifest() -> Manifest
      - MANIFEST = Manifest(...)

    Project properties from a sibling gradle.properties are merged underneath
    the ones the manifest sets itself.
    """
    mf_path = Path(path).expanduser().resolve()
    if not mf_path.exists():
        raise FileNotFoundError(f"Manifest file not found: {mf_path}")
    if mf_path.suffix != ".py":
        raise ValueError(f"Manifest must be a .py file, got: {mf_path.name}")

    module_name = f"chisel_manifest_{mf_path.stem}"
    globals_dict = runpy.run_path(str(mf_path), run_name=module_name)

    manifest = None
    if "manifest" in globals_dict and callable(globals_dict["manifest"]):
        manifest = globals_dict["manifest"]()
    elif "MANIFEST" in globals_dict:
        manifest = globals_dict["MANIFEST"]

    if not isinstance(manifest, Manifest):
        raise ManifestError(
            "Manifest file must return/define a Manifest. "
            "Define manifest() -> Manifest or MANIFEST = Manifest(...).",
            details={"path": str(mf_path)},
        )

    root = mf_path.parent
    props = load_properties(root / PROPERTIES_FILE)
    props.update(manifest.properties)
    manifest.properties = props
    if manifest.root is None:
        manifest.root = str(root)
    return manifest


def find_manifest(directory: str | Path = ".") -> Path | None:
    """Default manifest file in `directory`, if present."""
    candidate = Path(directory) / DEFAULT_MANIFEST
    return candidate if candidate.exists() else None
