"""Tests for the REST data store with mocked responses.

Requests are answered by an in-process httpx.MockTransport.
"""

import httpx
import pytest

from crm_reports.common.config import DataStoreConfig
from crm_reports.query.model import (
    FilterOperator,
    FilterPredicate,
    FilterValue,
    SortDirection,
    SortKey,
)
from crm_reports.storage.interfaces import DataStoreError, DataStoreQuery
from crm_reports.storage.rest_store import RestDataStore, build_params, filter_param

SAMPLE_DEALS_RESPONSE = [
    {"name": "Acme Renewal", "value": 5000, "status": "won"},
    {"name": "Globex Expansion", "value": 12000, "status": "open"},
]


@pytest.fixture
def rest_config() -> DataStoreConfig:
    return DataStoreConfig(
        backend="rest",
        base_url="https://crm.example.com/rest/v1/",
        api_key="anon-key",
        timeout_seconds=5.0,
    )


@pytest.fixture
def deals_query() -> DataStoreQuery:
    return DataStoreQuery(
        table="deals_report",
        columns=["name", "value", "status"],
        filters=[
            FilterPredicate("status", FilterOperator.EQUALS, FilterValue.text("won")),
            FilterPredicate("value", FilterOperator.GREATER_THAN, FilterValue.number(" 100 ")),
        ],
        order_by=[SortKey("value", SortDirection.DESC), SortKey("name", SortDirection.ASC)],
        limit=50,
        tenant_id="tenant-a",
    )


class Recorder:
    """Mock transport handler that records requests."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


class TestFilterParams:
    """Tests for filter translation."""

    @pytest.mark.parametrize(
        "operator,raw,expected",
        [
            (FilterOperator.EQUALS, "won", "eq.won"),
            (FilterOperator.NOT_EQUALS, "lost", "neq.lost"),
            (FilterOperator.GREATER_THAN, " 10 ", "gt.10"),
            (FilterOperator.LESS_THAN, "2024-01-01", "lt.2024-01-01"),
            (FilterOperator.CONTAINS, "acme", "ilike.*acme*"),
            (FilterOperator.CONTAINS, "50%_off", "ilike.*50\\%\\_off*"),
            (FilterOperator.CONTAINS, "a\\b", "ilike.*a\\\\b*"),
            (FilterOperator.CONTAINS, "5*", "ilike.*5_*"),
        ],
    )
    def test_operators(self, operator, raw, expected):
        predicate = FilterPredicate("status", operator, FilterValue.text(raw))

        assert filter_param(predicate) == ("status", expected)

    def test_build_params(self, deals_query):
        params = build_params(deals_query)

        assert params == [
            ("select", "name,value,status"),
            ("tenant_id", "eq.tenant-a"),
            ("status", "eq.won"),
            ("value", "gt.100"),
            ("order", "value.desc,name.asc"),
            ("limit", "50"),
        ]

    def test_build_params_unscoped(self):
        params = build_params(DataStoreQuery(table="contacts", columns=[], limit=5))

        assert params == [("select", "*"), ("limit", "5")]


class TestRestDataStore:
    """Tests for RestDataStore requests."""

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            RestDataStore(DataStoreConfig(backend="rest"))

    def test_client_requires_context(self, rest_config):
        store = RestDataStore(rest_config)

        assert store.backend_type == "rest"
        with pytest.raises(RuntimeError):
            _ = store.client

    @pytest.mark.asyncio
    async def test_select_success(self, rest_config, deals_query):
        """Test a successful select and the request it sends."""
        recorder = Recorder(httpx.Response(200, json=SAMPLE_DEALS_RESPONSE))

        async with RestDataStore(rest_config, transport=httpx.MockTransport(recorder)) as store:
            rows = await store.select(deals_query)

        assert rows == SAMPLE_DEALS_RESPONSE
        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/deals_report"
        assert request.url.params.multi_items() == build_params(deals_query)
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_no_auth_headers_without_key(self, rest_config, deals_query):
        config = rest_config.model_copy(update={"api_key": ""})
        recorder = Recorder(httpx.Response(200, json=[]))

        async with RestDataStore(config, transport=httpx.MockTransport(recorder)) as store:
            await store.select(deals_query)

        headers = recorder.requests[0].headers
        assert "apikey" not in headers
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_http_error(self, rest_config, deals_query):
        """Test that a non-200 answer raises with status and body."""
        recorder = Recorder(
            httpx.Response(400, json={"message": 'column "bogus" does not exist'})
        )

        async with RestDataStore(rest_config, transport=httpx.MockTransport(recorder)) as store:
            with pytest.raises(DataStoreError) as exc_info:
                await store.select(deals_query)

        error = exc_info.value
        assert error.status_code == 400
        assert error.details == {"message": 'column "bogus" does not exist'}
        assert "status 400" in str(error)

    @pytest.mark.asyncio
    async def test_unparseable_body(self, rest_config, deals_query):
        recorder = Recorder(httpx.Response(502, text="Bad Gateway"))

        async with RestDataStore(rest_config, transport=httpx.MockTransport(recorder)) as store:
            with pytest.raises(DataStoreError) as exc_info:
                await store.select(deals_query)

        assert exc_info.value.details == {"raw": "Bad Gateway"}

    @pytest.mark.asyncio
    async def test_non_list_body(self, rest_config, deals_query):
        recorder = Recorder(httpx.Response(200, json={"rows": []}))

        async with RestDataStore(rest_config, transport=httpx.MockTransport(recorder)) as store:
            with pytest.raises(DataStoreError):
                await store.select(deals_query)

    @pytest.mark.asyncio
    async def test_transport_error(self, rest_config, deals_query):
        """Test that connection failures surface as DataStoreError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with RestDataStore(rest_config, transport=httpx.MockTransport(refuse)) as store:
            with pytest.raises(DataStoreError) as exc_info:
                await store.select(deals_query)

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_close_releases_client(self, rest_config):
        transport = httpx.MockTransport(Recorder(httpx.Response(200, json=[])))
        store = RestDataStore(rest_config, transport=transport)
        await store.__aenter__()

        await store.close()

        with pytest.raises(RuntimeError):
            _ = store.client
