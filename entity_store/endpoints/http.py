"""
HTTP entity store.

Speaks the NGSI-LD flavoured listing contract used by the brokers:

    GET {base}{types_path}                      -> {"typeList": [...]}
    GET {base}{records_path}?type=&limit=&offset=&orderBy=id -> [{"id": ...}, ...]

Every request is bounded by an explicit timeout; timeouts, transport errors,
non-success statuses and unparseable bodies all surface as StoreUnavailable.
There is no retry here; the caller decides what a failed request means.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import requests

from entity_store.query.plan import PagePlan, PageResult

from .base import EntityStore, StoreUnavailable

DEFAULT_TYPES_PATH = "/ngsi-ld/v1/types"
DEFAULT_RECORDS_PATH = "/ngsi-ld/v1/entities"
DEFAULT_COUNT_HEADER = "NGSILD-Results-Count"


@dataclass(frozen=True)
class StoreSettings:
    name: str
    base_url: str
    types_path: str = DEFAULT_TYPES_PATH
    records_path: str = DEFAULT_RECORDS_PATH
    type_list_field: str = "typeList"
    timeout_seconds: float = 30.0
    headers: Dict[str, str] = field(default_factory=lambda: {"Accept": "application/json"})
    request_count: bool = False
    count_header: str = DEFAULT_COUNT_HEADER

    @classmethod
    def from_config(cls, name: str, cfg: Optional[Dict[str, Any]]) -> "StoreSettings":
        data = dict(cfg or {})
        base_url = str(data.get("base_url") or data.get("url") or "").strip()
        if not base_url:
            raise ValueError(f"{name}.base_url must be provided")
        headers = {"Accept": "application/json"}
        headers.update({str(k): str(v) for k, v in (data.get("headers") or {}).items()})
        return cls(
            name=name,
            base_url=base_url.rstrip("/"),
            types_path=str(data.get("types_path", DEFAULT_TYPES_PATH)),
            records_path=str(data.get("records_path", DEFAULT_RECORDS_PATH)),
            type_list_field=str(data.get("type_list_field", "typeList")),
            timeout_seconds=float(data.get("timeout_seconds", 30.0)),
            headers=headers,
            request_count=bool(data.get("request_count", False)),
            count_header=str(data.get("count_header", DEFAULT_COUNT_HEADER)),
        )


class HttpEntityStore(EntityStore):
    def __init__(self, settings: StoreSettings, session: requests.Session | None = None) -> None:
        super().__init__(settings.name)
        self.settings = settings
        self._session = session or requests.Session()
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    def describe(self) -> str:
        return self.settings.base_url

    def list_types(self) -> List[str]:
        url = self._url(self.settings.types_path)
        response = self._get(url)
        body = self._json(response, url)
        if isinstance(body, list):
            types = body
        elif isinstance(body, dict):
            types = body.get(self.settings.type_list_field)
        else:
            types = None
        if not isinstance(types, list):
            raise StoreUnavailable(
                f"{self.name}: type listing has no '{self.settings.type_list_field}' list",
                store=self.name,
                url=url,
                status_code=response.status_code,
                reason="malformed_body",
            )
        return [str(entry) for entry in types]

    def fetch_page(self, plan: PagePlan) -> PageResult:
        url = self._url(self.settings.records_path)
        effective = replace(plan, with_count=True) if self.settings.request_count else plan
        response = self._get(url, params=effective.params())
        body = self._json(response, url)
        if not isinstance(body, list):
            raise StoreUnavailable(
                f"{self.name}: record listing is not a JSON array",
                store=self.name,
                url=url,
                status_code=response.status_code,
                reason="malformed_body",
            )
        return PageResult.from_records(body, total=self._total(response))

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.settings.base_url}{path}"

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        try:
            response = self._session.get(
                url,
                params=params,
                headers=self.settings.headers,
                timeout=self.settings.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise StoreUnavailable(
                f"{self.name}: request timed out after {self.settings.timeout_seconds}s",
                store=self.name,
                url=url,
                reason="timeout",
            ) from exc
        except requests.RequestException as exc:
            raise StoreUnavailable(
                f"{self.name}: request failed: {exc}",
                store=self.name,
                url=url,
                reason="unreachable",
            ) from exc
        if response.status_code != 200:
            raise StoreUnavailable(
                f"{self.name}: HTTP {response.status_code}",
                store=self.name,
                url=url,
                status_code=response.status_code,
            )
        return response

    def _json(self, response: requests.Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise StoreUnavailable(
                f"{self.name}: response was not valid JSON",
                store=self.name,
                url=url,
                status_code=response.status_code,
                reason="malformed_body",
            ) from exc

    def _total(self, response: requests.Response) -> Optional[int]:
        if not self.settings.request_count:
            return None
        raw = response.headers.get(self.settings.count_header)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None


__all__ = ["HttpEntityStore", "StoreSettings"]
