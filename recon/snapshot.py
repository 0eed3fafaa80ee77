"""
Type enumeration and exhaustive, id-ordered pagination of one store.

A snapshot is always returned for a (store, type) pair, even when the listing
breaks off early: ``complete`` and ``termination`` say how far it got, so a
short listing is never mistaken for a real discrepancy downstream.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from entity_store.common import PrintLogger
from entity_store.endpoints.base import EntityStore, StoreUnavailable
from entity_store.events import Emitter, emit_log
from entity_store.query.plan import PagePlan

DEFAULT_PAGE_SIZE = 1000
DEFAULT_MAX_PAGES = 100

TERMINATION_EXHAUSTED = "exhausted"
TERMINATION_STORE_ERROR = "store_error"
TERMINATION_SAFETY_BOUND = "safety_bound"
TERMINATION_CANCELLED = "cancelled"


@dataclass(frozen=True)
class RecordSnapshot:
    store: str
    record_type: str
    ids: Tuple[str, ...] = ()
    records: Tuple[Any, ...] = ()
    pages_fetched: int = 0
    complete: bool = True
    termination: str = TERMINATION_EXHAUSTED
    error: Optional[str] = None
    malformed_count: int = 0
    duplicate_count: int = 0

    @property
    def count(self) -> int:
        return len(self.ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.store,
            "record_type": self.record_type,
            "count": self.count,
            "pages_fetched": self.pages_fetched,
            "complete": self.complete,
            "termination": self.termination,
            "error": self.error,
            "malformed_count": self.malformed_count,
            "duplicate_count": self.duplicate_count,
        }


def enumerate_types(
    store: EntityStore,
    *,
    logger: Optional[PrintLogger] = None,
    emitter: Optional[Emitter] = None,
) -> List[str]:
    try:
        types = store.list_types()
    except StoreUnavailable as exc:
        emit_log(
            emitter,
            level="ERROR",
            msg="type_enumeration_failed",
            store=store.name,
            url=exc.url,
            status_code=exc.status_code,
            reason=exc.reason,
            err=str(exc),
            logger=logger,
        )
        raise
    emit_log(emitter, level="INFO", msg="types_enumerated", store=store.name, types=len(types), logger=logger)
    return types


def extract_id(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    value = record.get("id")
    if value is None or value == "":
        return None
    return str(value)


def fetch_snapshot(
    store: EntityStore,
    record_type: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    logger: Optional[PrintLogger] = None,
    emitter: Optional[Emitter] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RecordSnapshot:
    plan = PagePlan.first(record_type, page_size)
    seen: Set[str] = set()
    ids: List[str] = []
    records: List[Any] = []
    pages = malformed = duplicates = 0
    termination = TERMINATION_EXHAUSTED
    error: Optional[str] = None

    while True:
        if cancel_event is not None and cancel_event.is_set():
            termination = TERMINATION_CANCELLED
            break
        if pages >= max_pages:
            termination = TERMINATION_SAFETY_BOUND
            emit_log(
                emitter,
                level="WARN",
                msg="pagination_safety_bound_reached",
                store=store.name,
                record_type=record_type,
                pages=pages,
                bound=page_size * max_pages,
                logger=logger,
            )
            break
        try:
            page = store.fetch_page(plan)
        except StoreUnavailable as exc:
            termination = TERMINATION_STORE_ERROR
            error = str(exc)
            emit_log(
                emitter,
                level="WARN",
                msg="page_fetch_failed",
                store=store.name,
                record_type=record_type,
                offset=plan.offset,
                status_code=exc.status_code,
                reason=exc.reason,
                err=error,
                logger=logger,
            )
            break
        pages += 1
        for record in page.records:
            records.append(record)
            record_id = extract_id(record)
            if record_id is None:
                malformed += 1
                continue
            if record_id in seen:
                duplicates += 1
                continue
            seen.add(record_id)
            ids.append(record_id)
        if logger is not None:
            logger.debug(
                "page_fetched",
                store=store.name,
                record_type=record_type,
                offset=plan.offset,
                records=len(page),
                total=page.total,
            )
        if len(page) < page_size:
            break
        if page.total is not None and plan.offset + page_size >= page.total:
            break
        plan = plan.next_page()

    if malformed:
        emit_log(
            emitter,
            level="WARN",
            msg="malformed_records_skipped",
            store=store.name,
            record_type=record_type,
            malformed=malformed,
            logger=logger,
        )
    return RecordSnapshot(
        store=store.name,
        record_type=record_type,
        ids=tuple(ids),
        records=tuple(records),
        pages_fetched=pages,
        complete=termination == TERMINATION_EXHAUSTED,
        termination=termination,
        error=error,
        malformed_count=malformed,
        duplicate_count=duplicates,
    )


__all__ = [
    "RecordSnapshot",
    "enumerate_types",
    "extract_id",
    "fetch_snapshot",
    "TERMINATION_EXHAUSTED",
    "TERMINATION_STORE_ERROR",
    "TERMINATION_SAFETY_BOUND",
    "TERMINATION_CANCELLED",
]
