# registry.py
from __future__ import annotations

from typing import Dict, Iterable, List

from .errors import UnknownVariant
from .model import Loader, Manifest, Variant


class VariantRegistry:
    """Known platform variants, in declaration order."""

    def __init__(self) -> None:
        self._variants: Dict[str, Variant] = {}

    def register(self, variant_id: str, flags: Iterable[str] = ()) -> Variant:
        variant = Variant(
            id=variant_id,
            flags=frozenset(flags),
            loader=Loader.parse(variant_id),
        )
        existing = self._variants.get(variant_id)
        if existing is not None and existing != variant:
            raise ValueError(
                f"Variant '{variant_id}' already registered with flags {sorted(existing.flags)}"
            )
        self._variants[variant_id] = variant
        return variant

    def select(self, variant_id: str) -> Variant:
        try:
            return self._variants[variant_id]
        except KeyError:
            raise UnknownVariant(
                f"Variant '{variant_id}' is not registered",
                details={"known": sorted(self._variants)},
            ) from None

    def variants(self) -> List[Variant]:
        return list(self._variants.values())

    def __contains__(self, variant_id: object) -> bool:
        return variant_id in self._variants

    def __len__(self) -> int:
        return len(self._variants)

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "VariantRegistry":
        reg = cls()
        for variant_id, flags in manifest.variants.items():
            reg.register(variant_id, flags)
        return reg
