from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Set, Tuple

from entity_store.common import PrintLogger, new_run_id
from entity_store.config import filter_types
from entity_store.endpoints.base import EntityStore, StoreUnavailable
from entity_store.endpoints.factory import EndpointFactory
from entity_store.events import Emitter, emit_log, emit_state

from .context import ReconContext, ReconSettings
from .diff import TypeCatalogDiff, diff_types
from .report import DiscrepancyReporter
from .results import RunSummary, TypeReport
from .snapshot import RecordSnapshot, enumerate_types, fetch_snapshot

STATE_ENUMERATING_TYPES = "enumerating_types"
STATE_DIFFING_TYPES = "diffing_types"
STATE_PROCESSING_TYPE = "processing_type"
STATE_FINALIZING = "finalizing"


class ReconciliationOrchestrator:
    """Drives one reconciliation run from type enumeration to the run summary."""

    def __init__(self, context: ReconContext, reporter: Optional[DiscrepancyReporter] = None) -> None:
        self.context = context
        self.reporter = reporter or DiscrepancyReporter(
            context.settings.report_dir,
            source_url=context.source.describe(),
            target_url=context.target.describe(),
            dump_snapshots=context.settings.dump_snapshots,
            logger=context.logger,
        )

    @property
    def settings(self) -> ReconSettings:
        return self.context.settings

    def cancel(self) -> None:
        if not self.context.cancelled:
            emit_log(self.context.emitter, level="WARN", msg="run_cancel_requested", logger=self.context.logger)
        self.context.cancel_event.set()

    def run(self) -> RunSummary:
        ctx = self.context
        ctx.run_id = new_run_id()
        ctx.logger.run_id = ctx.run_id
        source_url = ctx.source.describe()
        target_url = ctx.target.describe()
        self.reporter.reset()
        emit_log(
            ctx.emitter,
            level="INFO",
            msg="recon_start",
            source=source_url,
            target=target_url,
            page_size=self.settings.page_size,
            max_pages=self.settings.max_pages,
            max_parallel=self.settings.max_parallel,
            report_dir=self.settings.report_dir,
            logger=ctx.logger,
        )

        self._transition(STATE_ENUMERATING_TYPES)
        try:
            source_types = enumerate_types(ctx.source, logger=ctx.logger, emitter=ctx.emitter)
            target_types = enumerate_types(ctx.target, logger=ctx.logger, emitter=ctx.emitter)
        except StoreUnavailable as exc:
            summary = RunSummary.fatal(str(exc), source_url=source_url, target_url=target_url, run_id=ctx.run_id)
            self.reporter.write_summary(summary)
            emit_log(ctx.emitter, level="ERROR", msg="recon_fatal", store=exc.store, err=str(exc), logger=ctx.logger)
            self._transition(summary.outcome)
            return summary

        self._transition(STATE_DIFFING_TYPES)
        if self.settings.only_types:
            source_types = filter_types(source_types, self.settings.only_types)
            target_types = filter_types(target_types, self.settings.only_types)
        catalog = diff_types(source_types, target_types)
        self._log_catalog(catalog)

        reports, skipped, locations = self._process_types(source_types, set(target_types))

        self._transition(STATE_FINALIZING)
        summary = RunSummary.from_reports(
            reports,
            source_url=source_url,
            target_url=target_url,
            catalog=catalog,
            locations=locations,
            skipped_types=skipped,
            cancelled=ctx.cancelled,
            run_id=ctx.run_id,
        )
        self.reporter.write_summary(summary)
        emit_log(
            ctx.emitter,
            level="INFO" if summary.exit_code == 0 else "WARN",
            msg="recon_end",
            outcome=summary.outcome,
            total_source=summary.total_source,
            total_target=summary.total_target,
            missing_in_target=summary.total_missing_in_target,
            extra_in_target=summary.total_extra_in_target,
            report_dir=self.settings.report_dir,
            logger=ctx.logger,
        )
        self._transition(summary.outcome)
        return summary

    def _process_types(
        self,
        source_types: List[str],
        target_catalog: Set[str],
    ) -> Tuple[List[TypeReport], List[str], Dict[str, str]]:
        by_index: Dict[int, TypeReport] = {}
        skipped: List[str] = []
        locations: Dict[str, str] = {}
        totals = [0, 0]

        def record(index: int, record_type: str, report: Optional[TypeReport]) -> None:
            if report is None:
                skipped.append(record_type)
                return
            by_index[index] = report
            locations[record_type] = self.reporter.write_type_report(report)
            totals[0] += report.source_count
            totals[1] += report.target_count
            self.context.logger.info("recon_running_totals", total_source=totals[0], total_target=totals[1])

        parallel = self.settings.max_parallel
        if parallel == 1 or len(source_types) < 2:
            for index, record_type in enumerate(source_types):
                record(index, record_type, self._process_type(record_type, record_type in target_catalog))
        else:
            with ThreadPoolExecutor(max_workers=parallel) as executor:
                future_map = {
                    executor.submit(self._process_type, record_type, record_type in target_catalog): (index, record_type)
                    for index, record_type in enumerate(source_types)
                }
                for future in as_completed(future_map):
                    index, record_type = future_map[future]
                    record(index, record_type, future.result())
        reports = [by_index[index] for index in sorted(by_index)]
        skipped_set = set(skipped)
        ordered_skipped = [record_type for record_type in source_types if record_type in skipped_set]
        ordered_locations = {report.record_type: locations[report.record_type] for report in reports}
        return reports, ordered_skipped, ordered_locations

    def _process_type(self, record_type: str, in_target_catalog: bool) -> Optional[TypeReport]:
        ctx = self.context
        if ctx.cancelled:
            return None
        self._transition(STATE_PROCESSING_TYPE, record_type=record_type)
        source_snapshot = self._fetch(ctx.source, record_type)
        if in_target_catalog:
            target_snapshot = self._fetch(ctx.target, record_type)
        else:
            target_snapshot = RecordSnapshot(store=ctx.target.name, record_type=record_type)
        report = TypeReport.build(source_snapshot, target_snapshot, in_target_catalog=in_target_catalog)
        self._log_type(report)
        return report

    def _fetch(self, store: EntityStore, record_type: str) -> RecordSnapshot:
        ctx = self.context
        try:
            return fetch_snapshot(
                store,
                record_type,
                page_size=self.settings.page_size,
                max_pages=self.settings.max_pages,
                logger=ctx.logger,
                emitter=ctx.emitter,
                cancel_event=ctx.cancel_event,
            )
        except Exception as exc:  # pragma: no cover - defensive
            emit_log(
                ctx.emitter,
                level="ERROR",
                msg="recon_type_fetch_failed",
                store=store.name,
                record_type=record_type,
                err=str(exc),
                logger=ctx.logger,
            )
            return RecordSnapshot(
                store=store.name,
                record_type=record_type,
                complete=False,
                termination="error",
                error=str(exc),
            )

    def _transition(self, state: str, **fields: Any) -> None:
        emit_state(self.context.emitter, state, **fields)

    def _log_catalog(self, catalog: TypeCatalogDiff) -> None:
        ctx = self.context
        if catalog.matches:
            emit_log(ctx.emitter, level="INFO", msg="recon_types_match", types=len(catalog.source_types), logger=ctx.logger)
            return
        emit_log(
            ctx.emitter,
            level="WARN",
            msg="recon_types_mismatch",
            missing_in_target=list(catalog.missing_in_target),
            extra_in_target=list(catalog.extra_in_target),
            logger=ctx.logger,
        )

    def _log_type(self, report: TypeReport) -> None:
        ctx = self.context
        if report.matches:
            ctx.logger.info(
                "recon_type_match",
                record_type=report.record_type,
                source_count=report.source_count,
                target_count=report.target_count,
            )
            return
        limit = self.settings.preview_limit
        missing = report.discrepancies.missing_in_target
        extra = report.discrepancies.extra_in_target
        emit_log(
            ctx.emitter,
            level="WARN",
            msg="recon_type_incomplete" if not report.complete else "recon_type_mismatch",
            record_type=report.record_type,
            source_count=report.source_count,
            target_count=report.target_count,
            missing_in_target=len(missing),
            missing_preview=list(missing[:limit]) or None,
            missing_more=max(0, len(missing) - limit) or None,
            extra_in_target=len(extra),
            extra_preview=list(extra[:limit]) or None,
            extra_more=max(0, len(extra) - limit) or None,
            source_termination=None if report.source.complete else report.source.termination,
            target_termination=None if report.target.complete else report.target.termination,
            logger=ctx.logger,
        )


def build_orchestrator(
    cfg: Dict[str, Any],
    *,
    logger: PrintLogger,
    emitter: Optional[Emitter] = None,
    stores: Optional[Tuple[EntityStore, EntityStore]] = None,
) -> ReconciliationOrchestrator:
    settings = ReconSettings.from_config(cfg)
    source, target = stores if stores is not None else EndpointFactory.build_stores(cfg)
    context = ReconContext(settings=settings, source=source, target=target, logger=logger, emitter=emitter)
    return ReconciliationOrchestrator(context)


def run_reconciliation(
    cfg: Dict[str, Any],
    *,
    logger: PrintLogger,
    emitter: Optional[Emitter] = None,
    stores: Optional[Tuple[EntityStore, EntityStore]] = None,
) -> RunSummary:
    orchestrator = build_orchestrator(cfg, logger=logger, emitter=emitter, stores=stores)
    try:
        return orchestrator.run()
    finally:
        orchestrator.context.source.close()
        orchestrator.context.target.close()


__all__ = ["ReconciliationOrchestrator", "build_orchestrator", "run_reconciliation"]
