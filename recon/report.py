from __future__ import annotations

import hashlib
import json
import re
import shutil
from pathlib import Path
from typing import Any, List, Optional, Sequence

from entity_store.common import PrintLogger, utc_now_iso

from .results import RunSummary, TypeReport

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

MASTER_SUMMARY_FILE = "master_summary.txt"
RUN_SUMMARY_FILE = "run_summary.json"
TYPE_SUMMARY_FILE = "summary.txt"
TYPE_SUMMARY_JSON = "summary.json"
MISSING_FILE = "missing_in_target.txt"
EXTRA_FILE = "extra_in_target.txt"
SOURCE_DUMP_FILE = "source_entities_all.json"
TARGET_DUMP_FILE = "target_entities_all.json"
RUN_MARKER_FILE = ".entity-recon"

# Only a directory holding one of these is cleared by a new run.
_RUN_MARKERS = (RUN_MARKER_FILE, MASTER_SUMMARY_FILE, RUN_SUMMARY_FILE)
_RESERVED_NAMES = frozenset(_RUN_MARKERS)


def type_dir_name(record_type: str) -> str:
    """Filesystem-safe directory name; a hash suffix keeps sanitised names distinct."""

    safe = _UNSAFE_CHARS.sub("_", record_type).strip("._") or "type"
    if safe == record_type and safe not in _RESERVED_NAMES:
        return safe
    digest = hashlib.sha1(record_type.encode("utf-8")).hexdigest()[:8]
    return f"{safe[-80:]}-{digest}"


def _write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True, default=str)
        handle.write("\n")


def _write_listing(path: Path, header: str, record_type: str, timestamp: str, ids: Sequence[str]) -> None:
    lines = [
        f"# {header}",
        f"# Type: {record_type}",
        f"# Timestamp: {timestamp}",
        f"# Total: {len(ids)}",
        "",
    ]
    lines.extend(ids)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class DiscrepancyReporter:
    """Writes one run's reports under ``report_dir``, replacing whatever was there."""

    def __init__(
        self,
        report_dir: str,
        *,
        source_url: str = "",
        target_url: str = "",
        dump_snapshots: bool = True,
        logger: Optional[PrintLogger] = None,
    ) -> None:
        self.root = Path(report_dir)
        self.source_url = source_url
        self.target_url = target_url
        self.dump_snapshots = dump_snapshots
        self.logger = logger

    def reset(self) -> None:
        """Empty ``report_dir`` for a new run.

        Raises ``NotADirectoryError`` when the path is a file and
        ``FileExistsError`` when it is a non-empty directory that no previous
        run wrote.
        """

        if self.root.exists():
            if not self.root.is_dir():
                raise NotADirectoryError(f"report_dir {self.root} is not a directory")
            if any(self.root.iterdir()) and not any((self.root / name).exists() for name in _RUN_MARKERS):
                raise FileExistsError(f"report_dir {self.root} is not empty and holds no previous run's reports")
            if self.logger is not None:
                self.logger.info("report_dir_cleared", path=str(self.root))
            shutil.rmtree(self.root)
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / RUN_MARKER_FILE).write_text(utc_now_iso() + "\n", encoding="utf-8")

    def write_type_report(self, report: TypeReport) -> str:
        type_dir = self.root / type_dir_name(report.record_type)
        type_dir.mkdir(parents=True, exist_ok=True)
        timestamp = report.created_at
        missing = report.discrepancies.missing_in_target
        extra = report.discrepancies.extra_in_target

        lines = [
            f"Entity Type: {report.record_type}",
            f"Timestamp: {timestamp}",
            f"Source API: {self.source_url}",
            f"Target API: {self.target_url}",
            f"Status: {report.status}",
            "",
            "Entity Counts:",
            f"  Source: {report.source_count}",
            f"  Target: {report.target_count}",
            "",
            "Discrepancies:",
            f"  Missing in target: {len(missing)}",
            f"  Extra in target: {len(extra)}",
        ]
        if not report.in_target_catalog:
            lines.append("  Type not listed by target")
        lines.extend(["", "Data Quality:"])
        for label, snapshot in (("Source", report.source), ("Target", report.target)):
            state = "complete" if snapshot.complete else f"INCOMPLETE ({snapshot.termination})"
            lines.append(
                f"  {label}: {state}, pages={snapshot.pages_fetched}, "
                f"malformed={snapshot.malformed_count}, duplicates={snapshot.duplicate_count}"
            )
            if snapshot.error:
                lines.append(f"    error: {snapshot.error}")
        (type_dir / TYPE_SUMMARY_FILE).write_text("\n".join(lines) + "\n", encoding="utf-8")
        _write_json(type_dir / TYPE_SUMMARY_JSON, report.to_dict())

        if missing:
            _write_listing(
                type_dir / MISSING_FILE,
                "Entities present in SOURCE but MISSING in TARGET",
                report.record_type,
                timestamp,
                missing,
            )
        if extra:
            _write_listing(
                type_dir / EXTRA_FILE,
                "Entities present in TARGET but NOT in SOURCE",
                report.record_type,
                timestamp,
                extra,
            )
        if self.dump_snapshots:
            _write_json(type_dir / SOURCE_DUMP_FILE, list(report.source.records))
            _write_json(type_dir / TARGET_DUMP_FILE, list(report.target.records))
        return str(type_dir)

    def write_summary(self, summary: RunSummary) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        lines: List[str] = [
            "=" * 64,
            "Entity Migration Comparison - Master Summary",
            "=" * 64,
            f"Run: {summary.run_id}",
            f"Timestamp: {summary.finished_at}",
            f"Source API: {summary.source_url}",
            f"Target API: {summary.target_url}",
            f"Outcome: {summary.outcome}",
        ]
        if summary.error:
            lines.append(f"Error: {summary.error}")
        if summary.catalog is not None:
            catalog = summary.catalog
            lines.extend(
                [
                    "",
                    "Entity Types:",
                    f"  Source types: {len(catalog.source_types)}",
                    f"  Target types: {len(catalog.target_types)}",
                ]
            )
            for entry in catalog.missing_in_target:
                lines.append(f"  Missing in target: {entry}")
            for entry in catalog.extra_in_target:
                lines.append(f"  Extra in target (not compared): {entry}")
        lines.extend(
            [
                "",
                "Overall Statistics:",
                f"  Types processed: {summary.types_processed}",
                f"  Total source entities: {summary.total_source}",
                f"  Total target entities: {summary.total_target}",
                f"  Missing in target: {summary.total_missing_in_target}",
                f"  Extra in target: {summary.total_extra_in_target}",
                f"  Malformed records skipped: {summary.total_malformed}",
            ]
        )
        if summary.incomplete_types:
            lines.append(f"  Incomplete data: {', '.join(summary.incomplete_types)}")
        if summary.skipped_types:
            lines.append(f"  Not processed (run aborted): {', '.join(summary.skipped_types)}")
        if summary.report_locations:
            lines.extend(["", "Detailed logs available in subdirectories by entity type:"])
            for record_type, location in summary.report_locations:
                lines.append(f"  - {record_type}: {Path(location).name}/")
        (self.root / MASTER_SUMMARY_FILE).write_text("\n".join(lines) + "\n", encoding="utf-8")
        _write_json(self.root / RUN_SUMMARY_FILE, summary.to_dict())
        return str(self.root / MASTER_SUMMARY_FILE)


__all__ = ["DiscrepancyReporter", "RUN_MARKER_FILE", "type_dir_name"]
