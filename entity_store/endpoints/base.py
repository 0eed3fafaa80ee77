from __future__ import annotations

import abc
from typing import List, Optional

from entity_store.query.plan import PagePlan, PageResult


class StoreUnavailable(RuntimeError):
    """Raised when a store cannot answer a request (status, transport, timeout or body)."""

    def __init__(
        self,
        message: str,
        *,
        store: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        reason: str = "http_status",
    ) -> None:
        super().__init__(message)
        self.store = store
        self.url = url
        self.status_code = status_code
        self.reason = reason


class EntityStore(abc.ABC):
    """A store exposing a type catalog and an id-ordered, paginated record listing."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abc.abstractmethod
    def list_types(self) -> List[str]:
        """Return the store's record types in the order the store lists them."""

    @abc.abstractmethod
    def fetch_page(self, plan: PagePlan) -> PageResult:
        """Return the records of one page; raise StoreUnavailable on failure."""

    def describe(self) -> str:
        return self.name

    def close(self) -> None:
        return None


__all__ = ["EntityStore", "PageResult", "StoreUnavailable"]
