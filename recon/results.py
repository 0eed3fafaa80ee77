from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from entity_store.common import utc_now_iso

from .diff import DiscrepancySet, TypeCatalogDiff, diff_snapshots
from .snapshot import RecordSnapshot

OUTCOME_SUCCESS = "success"
OUTCOME_DISCREPANCY = "discrepancy_found"
OUTCOME_FATAL = "fatal_error"
OUTCOME_ABORTED = "aborted"

EXIT_CODES = {
    OUTCOME_SUCCESS: 0,
    OUTCOME_DISCREPANCY: 1,
    OUTCOME_FATAL: 2,
    OUTCOME_ABORTED: 130,
}


@dataclass(frozen=True)
class TypeReport:
    record_type: str
    source: RecordSnapshot
    target: RecordSnapshot
    discrepancies: DiscrepancySet
    in_target_catalog: bool = True
    created_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def build(cls, source: RecordSnapshot, target: RecordSnapshot, *, in_target_catalog: bool = True) -> "TypeReport":
        return cls(
            record_type=source.record_type,
            source=source,
            target=target,
            discrepancies=diff_snapshots(source, target),
            in_target_catalog=in_target_catalog,
        )

    @property
    def source_count(self) -> int:
        return self.source.count

    @property
    def target_count(self) -> int:
        return self.target.count

    @property
    def complete(self) -> bool:
        return self.source.complete and self.target.complete

    @property
    def matches(self) -> bool:
        return self.complete and self.source_count == self.target_count and self.discrepancies.is_empty

    @property
    def status(self) -> str:
        if not self.complete:
            return "incomplete"
        return "match" if self.matches else "mismatch"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_type": self.record_type,
            "status": self.status,
            "in_target_catalog": self.in_target_catalog,
            "source_count": self.source_count,
            "target_count": self.target_count,
            "discrepancies": self.discrepancies.to_dict(),
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class RunSummary:
    outcome: str
    source_url: str
    target_url: str
    catalog: Optional[TypeCatalogDiff] = None
    total_source: int = 0
    total_target: int = 0
    total_missing_in_target: int = 0
    total_extra_in_target: int = 0
    total_malformed: int = 0
    types_processed: int = 0
    mismatched_types: Tuple[str, ...] = ()
    incomplete_types: Tuple[str, ...] = ()
    skipped_types: Tuple[str, ...] = ()
    report_locations: Tuple[Tuple[str, str], ...] = ()
    error: Optional[str] = None
    run_id: str = ""
    finished_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_reports(
        cls,
        reports: Iterable[TypeReport],
        *,
        source_url: str,
        target_url: str,
        catalog: Optional[TypeCatalogDiff] = None,
        locations: Optional[Mapping[str, str]] = None,
        skipped_types: Sequence[str] = (),
        cancelled: bool = False,
        run_id: str = "",
    ) -> "RunSummary":
        total_source = total_target = missing = extra = malformed = processed = 0
        mismatched: List[str] = []
        incomplete: List[str] = []
        for report in reports:
            processed += 1
            total_source += report.source_count
            total_target += report.target_count
            missing += len(report.discrepancies.missing_in_target)
            extra += len(report.discrepancies.extra_in_target)
            malformed += report.source.malformed_count + report.target.malformed_count
            if not report.complete:
                incomplete.append(report.record_type)
            elif not report.matches:
                mismatched.append(report.record_type)
        if cancelled:
            outcome = OUTCOME_ABORTED
        elif mismatched or incomplete:
            outcome = OUTCOME_DISCREPANCY
        elif total_source != total_target or missing or extra:
            outcome = OUTCOME_DISCREPANCY
        else:
            outcome = OUTCOME_SUCCESS
        return cls(
            outcome=outcome,
            source_url=source_url,
            target_url=target_url,
            catalog=catalog,
            total_source=total_source,
            total_target=total_target,
            total_missing_in_target=missing,
            total_extra_in_target=extra,
            total_malformed=malformed,
            types_processed=processed,
            mismatched_types=tuple(mismatched),
            incomplete_types=tuple(incomplete),
            skipped_types=tuple(skipped_types),
            report_locations=tuple((locations or {}).items()),
            run_id=run_id,
        )

    @classmethod
    def fatal(cls, error: str, *, source_url: str, target_url: str, run_id: str = "") -> "RunSummary":
        return cls(outcome=OUTCOME_FATAL, source_url=source_url, target_url=target_url, error=error, run_id=run_id)

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.outcome]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.outcome,
            "exit_code": self.exit_code,
            "run_id": self.run_id,
            "finished_at": self.finished_at,
            "source": self.source_url,
            "target": self.target_url,
            "error": self.error,
            "types": self.catalog.to_dict() if self.catalog is not None else None,
            "summary": {
                "types_processed": self.types_processed,
                "total_source": self.total_source,
                "total_target": self.total_target,
                "missing_in_target": self.total_missing_in_target,
                "extra_in_target": self.total_extra_in_target,
                "malformed": self.total_malformed,
                "mismatched_types": list(self.mismatched_types),
                "incomplete_types": list(self.incomplete_types),
                "skipped_types": list(self.skipped_types),
            },
            "reports": dict(self.report_locations),
        }


__all__ = [
    "TypeReport",
    "RunSummary",
    "EXIT_CODES",
    "OUTCOME_SUCCESS",
    "OUTCOME_DISCREPANCY",
    "OUTCOME_FATAL",
    "OUTCOME_ABORTED",
]
