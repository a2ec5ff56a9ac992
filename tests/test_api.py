"""HTTP tests against the FastAPI app with an in-memory durable tier."""

import pytest
from fastapi.testclient import TestClient

from aggcache.api.aggregation_utils import DEFAULT_REGISTRATIONS
from aggcache.app_factory import create_app
from aggcache.core.config import AggregationSettings
from aggcache.core.container import build_container
from aggcache.models.aggregation import AggregationRegistration
from aggcache.models.flags.FeatureFlag import FeatureFlagName
from aggcache.services.feature_flags import FeatureFlagRegistry
from aggcache.services.storage_layer import InMemoryStorageAdapter

from conftest import CountingRecordSource, make_records

USER = {"X-User-Id": "u1"}


@pytest.fixture
def record_source():
    return CountingRecordSource(make_records(5))


@pytest.fixture
def container(clock, record_source):
    flags = FeatureFlagRegistry(
        env_overrides={FeatureFlagName.PRECOMPUTATION_SERVICE: True}, clock=clock
    )
    return build_container(
        AggregationSettings(sweep_interval_seconds=0),
        storage_adapter=InMemoryStorageAdapter(),
        record_source=record_source,
        registrations=DEFAULT_REGISTRATIONS,
        flags=flags,
        clock=clock,
    )


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as client:
        yield client


class TestSystem:
    def test_root(self, client):
        assert client.get("/").status_code == 200

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["aggregation_types"] == ["kpi", "top_channels"]
        assert body["flags"]["precomputation_service"] is True
        assert body["components"]["cache"]["memory_entries"] == 0


class TestAggregations:
    def test_list_types(self, client):
        response = client.get("/api/aggregations")

        assert response.json() == {"aggregation_types": ["kpi", "top_channels"]}

    def test_get_computes_then_serves_from_cache(self, client, record_source):
        first = client.get("/api/aggregations/kpi", headers=USER)
        second = client.get("/api/aggregations/kpi", headers=USER)

        assert first.status_code == 200
        assert first.json()["data"] == {"total_videos": 5, "unique_channels": 3, "unique_topics": 2}
        assert first.json()["source"] == "computed"
        assert first.json()["version"] == 1
        assert second.json()["source"] == "memory"
        assert second.json()["computed_at"] == first.json()["computed_at"]
        assert len(record_source.calls) == 1

    def test_filters_reach_the_record_source(self, client, record_source):
        client.get(
            "/api/aggregations/top_channels",
            params={"timeframe": "YTD", "product": "YouTube", "topics": ["science", "math"]},
            headers=USER,
        )

        filters, user_id = record_source.calls[0]
        assert user_id == "u1"
        assert filters.timeframe.value == "YTD"
        assert filters.topics == ["science", "math"]

    def test_missing_user_is_unauthorized(self, client):
        assert client.get("/api/aggregations/kpi").status_code == 401

    def test_unknown_type_is_not_found(self, client):
        assert client.get("/api/aggregations/nope", headers=USER).status_code == 404

    def test_invalid_timeframe_is_rejected(self, client):
        response = client.get("/api/aggregations/kpi", params={"timeframe": "Decade"}, headers=USER)

        assert response.status_code == 422

    def test_force_refresh(self, client, record_source):
        client.get("/api/aggregations/kpi", headers=USER)
        response = client.get("/api/aggregations/kpi", params={"force_refresh": True}, headers=USER)

        assert response.json()["source"] == "computed"
        assert len(record_source.calls) == 2

    def test_refresh_endpoint(self, client, record_source):
        client.get("/api/aggregations/kpi", headers=USER)
        response = client.post("/api/aggregations/kpi/refresh", headers=USER)

        assert response.status_code == 200
        assert len(record_source.calls) == 2

    def test_delete_clears_entry(self, client, record_source):
        client.get("/api/aggregations/kpi", headers=USER)

        assert client.delete("/api/aggregations/kpi", headers=USER).status_code == 204
        assert client.get("/api/aggregations/kpi", headers=USER).json()["source"] == "computed"
        assert len(record_source.calls) == 2

    def test_flag_off_serves_direct_computation(self, client):
        client.put("/api/flags/precomputation_service", json={"enabled": False})

        body = client.get("/api/aggregations/kpi", headers=USER).json()

        assert body["data"]["total_videos"] == 5
        assert body["metadata"] == {"fallback": True}

    def test_unrecoverable_source_failure_is_a_server_error(self, container, record_source):
        record_source.error = ConnectionError("warehouse offline")

        with TestClient(create_app(container), raise_server_exceptions=False) as client:
            response = client.get("/api/aggregations/kpi", headers=USER)

        assert response.status_code == 500
        assert len(record_source.calls) == 2

    def test_validation_failure_is_a_server_error(self, client, container):
        def reject(result, context):
            raise ValueError("bad result")

        container.data_processor.register(
            AggregationRegistration(type="broken", compute=lambda ctx: 1, validate=reject)
        )

        response = client.get("/api/aggregations/broken", headers=USER)

        assert response.status_code == 500
        assert "bad result" in response.json()["detail"]


class TestFlags:
    def test_list(self, client):
        body = client.get("/api/flags").json()

        assert body["precomputation_service"]["enabled"] is True
        assert body["precomputation_service"]["source"] == "env"
        assert body["precomputation_fallbacks"]["source"] == "default"

    def test_runtime_override_and_clear(self, client):
        response = client.put("/api/flags/precomputation_backfill", json={"enabled": True})

        assert response.status_code == 200
        assert response.json()["source"] == "runtime"

        assert client.delete("/api/flags/overrides").status_code == 204
        assert client.get("/api/flags").json()["precomputation_backfill"]["enabled"] is False

    def test_unknown_flag(self, client):
        assert client.put("/api/flags/nope", json={"enabled": True}).status_code == 404


class TestBackfill:
    BODY = {
        "aggregation_types": ["kpi", "top_channels"],
        "filter_sets": [{"timeframe": "MTD"}, {"timeframe": "YTD", "channels": ["Veritasium"]}],
        "batch_size": 1,
    }

    def test_disabled_is_a_conflict(self, client):
        assert client.post("/api/backfill", json=self.BODY, headers=USER).status_code == 409

    def test_runs_when_enabled(self, client, record_source):
        client.put("/api/flags/precomputation_backfill", json={"enabled": True})

        response = client.post("/api/backfill", json=self.BODY, headers=USER)

        assert response.status_code == 200
        assert response.json() == {"user_id": "u1", "processed": 4, "total": 4, "batches": 2}
        assert len(record_source.calls) == 4

    def test_unknown_types_are_rejected(self, client):
        client.put("/api/flags/precomputation_backfill", json={"enabled": True})
        body = {**self.BODY, "aggregation_types": ["kpi", "nope"]}

        assert client.post("/api/backfill", json=body, headers=USER).status_code == 404
