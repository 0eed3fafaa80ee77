from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class PagePlan:
    """One page of an id-ordered listing of a single record type."""

    record_type: str
    limit: int
    offset: int = 0
    order_by: str = "id"
    with_count: bool = False

    @classmethod
    def first(cls, record_type: str, limit: int, *, order_by: str = "id", with_count: bool = False) -> "PagePlan":
        if limit < 1:
            raise ValueError("page limit must be a positive integer")
        return cls(record_type=record_type, limit=limit, offset=0, order_by=order_by, with_count=with_count)

    @property
    def page_number(self) -> int:
        return self.offset // self.limit + 1

    def next_page(self) -> "PagePlan":
        return replace(self, offset=self.offset + self.limit)

    def params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "type": self.record_type,
            "limit": self.limit,
            "offset": self.offset,
            "orderBy": self.order_by,
        }
        if self.with_count:
            params["count"] = "true"
        return params


@dataclass
class PageResult:
    records: List[Any] = field(default_factory=list)
    total: Optional[int] = None

    @classmethod
    def from_records(cls, records: Iterable[Any], total: Optional[int] = None) -> "PageResult":
        return cls(records=list(records), total=total)

    def __len__(self) -> int:
        return len(self.records)
