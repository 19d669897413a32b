# resources.py
from __future__ import annotations

import string
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

from .errors import MissingProperty


class _PropertyTemplate(string.Template):
    # allow dotted keys such as ${mod.id}
    idpattern = r"[_a-zA-Z][_a-zA-Z0-9.\-]*"


def expand(text: str, props: Mapping[str, str], *, source: str = "<string>") -> str:
    """Replace ${key} placeholders; `$$` escapes a literal dollar."""
    try:
        return _PropertyTemplate(text).substitute(props)
    except KeyError as e:
        key = e.args[0]
        raise MissingProperty(
            f"No value for '{key}' in {source}",
            details={"property": key, "file": source},
        ) from None
    except ValueError as e:
        raise MissingProperty(
            f"Invalid placeholder in {source}: {e}",
            details={"file": source},
        ) from None


def template_names(templates: Iterable[str], props: Mapping[str, str]) -> List[str]:
    """Template file names may themselves contain placeholders ("${mod.id}-fabric.mixin.json")."""
    return [expand(t, props, source=t) for t in templates]


def expand_resources(
    src_dir: str | Path,
    dest_dir: str | Path,
    templates: Iterable[str],
    props: Mapping[str, str],
) -> Dict[str, str]:
    """
    Expand each template file from src_dir into dest_dir.
    Returns {relative name: written path}. Missing templates are an error.
    """
    src_root = Path(src_dir)
    dest_root = Path(dest_dir)
    written: Dict[str, str] = {}

    for name in template_names(templates, props):
        src = src_root / name
        if not src.is_file():
            raise FileNotFoundError(f"Resource template not found: {src}")
        out = dest_root / name
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(expand(src.read_text(encoding="utf-8"), props, source=name), encoding="utf-8")
        written[name] = str(out)

    return written
