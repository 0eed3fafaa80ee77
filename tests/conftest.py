import io
import json
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import pytest

from entity_store.common import PrintLogger
from entity_store.endpoints.base import EntityStore, StoreUnavailable
from entity_store.query.plan import PagePlan, PageResult


def records_for(*ids: Any, record_type: str = "T") -> List[Dict[str, Any]]:
    return [{"id": str(value), "type": record_type} for value in ids]


class StubStore(EntityStore):
    """In-memory store honouring limit/offset over per-type record lists."""

    def __init__(
        self,
        name: str,
        types: Iterable[str],
        records: Optional[Dict[str, List[Any]]] = None,
        *,
        fail_types: bool = False,
        fail_at: Iterable[Tuple[str, int]] = (),
        report_total: bool = False,
    ) -> None:
        super().__init__(name)
        self.types = list(types)
        self.records = {key: list(value) for key, value in (records or {}).items()}
        self.fail_types = fail_types
        self.fail_at: Set[Tuple[str, int]] = set(fail_at)
        self.report_total = report_total
        self.requests: List[PagePlan] = []
        self.closed = False

    def list_types(self) -> List[str]:
        if self.fail_types:
            raise StoreUnavailable(f"{self.name}: HTTP 503", store=self.name, status_code=503)
        return list(self.types)

    def fetch_page(self, plan: PagePlan) -> PageResult:
        self.requests.append(plan)
        if (plan.record_type, plan.offset) in self.fail_at:
            raise StoreUnavailable(f"{self.name}: HTTP 500", store=self.name, status_code=500)
        rows = self.records.get(plan.record_type, [])
        page = rows[plan.offset : plan.offset + plan.limit]
        total = len(rows) if self.report_total else None
        return PageResult.from_records(page, total=total)

    def describe(self) -> str:
        return f"stub://{self.name}"

    def close(self) -> None:
        self.closed = True

    def requests_for(self, record_type: str) -> List[PagePlan]:
        return [plan for plan in self.requests if plan.record_type == record_type]


class EndlessStore(EntityStore):
    """Never runs out of records: every page is full."""

    def __init__(self, name: str, types: Iterable[str]) -> None:
        super().__init__(name)
        self.types = list(types)
        self.requests: List[PagePlan] = []

    def list_types(self) -> List[str]:
        return list(self.types)

    def fetch_page(self, plan: PagePlan) -> PageResult:
        self.requests.append(plan)
        return PageResult.from_records({"id": f"urn:{plan.offset + idx}"} for idx in range(plan.limit))


@pytest.fixture
def stub_store():
    return StubStore


@pytest.fixture
def endless_store():
    return EndlessStore


@pytest.fixture
def make_records():
    return records_for


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return PrintLogger(job_name="recon_test", stream=log_stream, level="DEBUG")


@pytest.fixture
def logged(log_stream):
    def _read(msg: Optional[str] = None) -> List[Dict[str, Any]]:
        entries = [json.loads(line) for line in log_stream.getvalue().splitlines() if line.strip()]
        if msg is None:
            return entries
        return [entry for entry in entries if entry.get("msg") == msg]

    return _read
