import pytest
import requests

from entity_store.endpoints.base import StoreUnavailable
from entity_store.endpoints.factory import EndpointFactory
from entity_store.endpoints.http import HttpEntityStore, StoreSettings
from entity_store.query.plan import PagePlan
from recon.snapshot import fetch_snapshot


class _StubResponse:
    def __init__(self, status_code=200, body=None, headers=None, invalid_json=False):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("No JSON object could be decoded")
        return self._body


class _StubSession:
    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def _store(session, **overrides):
    cfg = {"base_url": "http://broker:9090/", "timeout_seconds": 5}
    cfg.update(overrides)
    return HttpEntityStore(StoreSettings.from_config("source", cfg), session=session)


def test_list_types_reads_type_list_field():
    session = _StubSession(_StubResponse(body={"id": "urn:types", "typeList": ["Building", "Device"]}))
    store = _store(session)

    types = store.list_types()

    assert types == ["Building", "Device"]
    call = session.calls[0]
    assert call["url"] == "http://broker:9090/ngsi-ld/v1/types"
    assert call["timeout"] == 5
    assert call["headers"]["Accept"] == "application/json"


def test_list_types_accepts_bare_array():
    store = _store(_StubSession(_StubResponse(body=["A"])))

    assert store.list_types() == ["A"]


def test_list_types_non_success_is_store_unavailable():
    store = _store(_StubSession(_StubResponse(status_code=503, body={})))

    with pytest.raises(StoreUnavailable) as exc:
        store.list_types()

    assert exc.value.status_code == 503
    assert exc.value.store == "source"


def test_list_types_missing_field_is_store_unavailable():
    store = _store(_StubSession(_StubResponse(body={"types": []})))

    with pytest.raises(StoreUnavailable) as exc:
        store.list_types()

    assert exc.value.reason == "malformed_body"


def test_connection_error_is_store_unavailable():
    store = _store(_StubSession(requests.ConnectionError("refused")))

    with pytest.raises(StoreUnavailable) as exc:
        store.list_types()

    assert exc.value.reason == "unreachable"


def test_fetch_page_sends_listing_parameters():
    session = _StubSession(_StubResponse(body=[{"id": "urn:1"}]))
    store = _store(session)

    page = store.fetch_page(PagePlan.first("Building", 1000))

    assert page.records == [{"id": "urn:1"}]
    assert page.total is None
    call = session.calls[0]
    assert call["url"] == "http://broker:9090/ngsi-ld/v1/entities"
    assert call["params"] == {"type": "Building", "limit": 1000, "offset": 0, "orderBy": "id"}


def test_fetch_page_reads_count_header_when_requested():
    session = _StubSession(_StubResponse(body=[], headers={"NGSILD-Results-Count": "42"}))
    store = _store(session, request_count=True)

    page = store.fetch_page(PagePlan.first("Building", 10))

    assert page.total == 42
    assert session.calls[0]["params"]["count"] == "true"


def test_fetch_page_rejects_non_array_body():
    store = _store(_StubSession(_StubResponse(body={"error": "nope"})))

    with pytest.raises(StoreUnavailable):
        store.fetch_page(PagePlan.first("Building", 10))


def test_invalid_json_is_store_unavailable():
    store = _store(_StubSession(_StubResponse(invalid_json=True)))

    with pytest.raises(StoreUnavailable) as exc:
        store.fetch_page(PagePlan.first("Building", 10))

    assert exc.value.reason == "malformed_body"


def test_page_timeout_degrades_to_partial_snapshot():
    full_page = [{"id": f"urn:{idx}"} for idx in range(2)]
    session = _StubSession(_StubResponse(body=full_page), requests.Timeout("read timed out"))
    store = _store(session)

    snapshot = fetch_snapshot(store, "Building", page_size=2)

    assert snapshot.ids == ("urn:0", "urn:1")
    assert not snapshot.complete
    assert "timed out" in snapshot.error


def test_settings_require_base_url():
    with pytest.raises(ValueError):
        StoreSettings.from_config("target", {})


def test_factory_builds_both_roles():
    cfg = {
        "source": {"base_url": "http://127.0.0.1:9090"},
        "target": {"base_url": "http://127.0.0.1:9092", "headers": {"Link": "<ctx>"}},
    }

    source, target = EndpointFactory.build_stores(cfg, session=_StubSession())

    assert source.describe() == "http://127.0.0.1:9090"
    assert target.name == "target"
    assert target.settings.headers == {"Accept": "application/json", "Link": "<ctx>"}
    with pytest.raises(ValueError):
        EndpointFactory.build_store(cfg, "backup")


def test_close_leaves_injected_session_open():
    session = _StubSession()
    store = _store(session)

    store.close()

    assert not session.closed
