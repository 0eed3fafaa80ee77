from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .snapshot import RecordSnapshot


def set_difference(reference: Iterable[str], comparand: Iterable[str]) -> List[str]:
    """Return ``reference - comparand`` keeping the order of ``reference``."""

    exclude = comparand if isinstance(comparand, (set, frozenset)) else set(comparand)
    emitted = set()
    missing: List[str] = []
    for item in reference:
        if item in exclude or item in emitted:
            continue
        emitted.add(item)
        missing.append(item)
    return missing


@dataclass(frozen=True)
class DiscrepancySet:
    missing_in_target: Tuple[str, ...] = ()
    extra_in_target: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.missing_in_target and not self.extra_in_target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missing_in_target": len(self.missing_in_target),
            "extra_in_target": len(self.extra_in_target),
        }


@dataclass(frozen=True)
class TypeCatalogDiff:
    source_types: Tuple[str, ...] = ()
    target_types: Tuple[str, ...] = ()
    missing_in_target: Tuple[str, ...] = ()
    extra_in_target: Tuple[str, ...] = ()

    @property
    def matches(self) -> bool:
        return not self.missing_in_target and not self.extra_in_target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_types": list(self.source_types),
            "target_types": list(self.target_types),
            "missing_in_target": list(self.missing_in_target),
            "extra_in_target": list(self.extra_in_target),
        }


def diff_types(source_types: Sequence[str], target_types: Sequence[str]) -> TypeCatalogDiff:
    return TypeCatalogDiff(
        source_types=tuple(source_types),
        target_types=tuple(target_types),
        missing_in_target=tuple(set_difference(source_types, target_types)),
        extra_in_target=tuple(set_difference(target_types, source_types)),
    )


def diff_snapshots(source: RecordSnapshot, target: RecordSnapshot) -> DiscrepancySet:
    source_ids = frozenset(source.ids)
    target_ids = frozenset(target.ids)
    return DiscrepancySet(
        missing_in_target=tuple(set_difference(source.ids, target_ids)),
        extra_in_target=tuple(set_difference(target.ids, source_ids)),
    )


__all__ = ["DiscrepancySet", "TypeCatalogDiff", "set_difference", "diff_types", "diff_snapshots"]
