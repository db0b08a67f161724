import pytest
from httpx import AsyncClient

from toolgate.core.config import settings
from toolgate.exec_core.schemas.metrics import MetricExecutionStatus

pytestmark = pytest.mark.asyncio

READ_ALL = [{"access": "read"}]


async def test_validate_intent_graph_accepts_valid_graph(client: AsyncClient):
    response = await client.post(
        "/api/v1/intent-graphs/validate",
        json={
            "intent_type": "execute",
            "execution_graph": {
                "nodes": [
                    {
                        "id": "fetch",
                        "type": "integration_call",
                        "capabilityId": "github_issues_list",
                        "params": {"entry_kind": "ui"},
                    }
                ],
                "edges": [],
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert [log["type"] for log in data["logs"]] == ["node_start", "node_complete"]


async def test_validate_intent_graph_reports_rejection_in_body(client: AsyncClient):
    response = await client.post(
        "/api/v1/intent-graphs/validate",
        json={
            "execution_graph": {
                "nodes": [{"id": "A", "type": "transform"}, {"id": "B", "type": "transform"}],
                "edges": [{"from": "A", "to": "B"}],
            }
        },
    )

    assert response.status_code == 200
    error = response.json()["error"]
    assert error["type"] == "InvalidIntentGraph"
    assert error["reason"] == "UnreachableNode"
    assert error["node_id"] == "A"
    assert error["status"] == "rejected"


async def test_execute_spec_returns_per_view_results(client: AsyncClient):
    response = await client.post(
        "/api/v1/specs/execute",
        json={
            "org_id": "org-1",
            "permissions": READ_ALL,
            "spec": {
                "title": "Overview",
                "views": [
                    {"id": "issues", "type": "table", "integration_id": "github", "table": "issues"},
                    {"id": "wikis", "type": "table", "integration_id": "github", "table": "wikis"},
                ],
            },
        },
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert results["issues"]["status"] == "success"
    assert results["issues"]["source"] == "live_api"
    assert len(results["issues"]["rows"]) == 2
    assert results["wikis"]["status"] == "error"
    assert results["wikis"]["error"] == "Unknown capability ID: github_wikis_list"


async def test_execute_spec_rejects_malformed_spec(client: AsyncClient):
    response = await client.post(
        "/api/v1/specs/execute",
        json={"org_id": "org-1", "spec": {"title": "x", "metrics": [{"id": "m", "label": "no source"}]}},
    )

    assert response.status_code == 422


async def test_run_metric_and_fetch_latest(client: AsyncClient, metric_repo, make_metric):
    metric = make_metric()
    await metric_repo.save(metric)

    missing = await client.get(f"/api/v1/metrics/{metric.id}/executions/latest")
    assert missing.status_code == 404

    response = await client.post(f"/api/v1/metrics/{metric.id}/run", json={"triggered_by": "dashboard"})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == MetricExecutionStatus.completed.value
    assert data["triggered_by"] == "dashboard"
    assert data["result"] == [{"id": 1, "state": "open"}, {"id": 2, "state": "open"}]

    latest = await client.get(f"/api/v1/metrics/{metric.id}/executions/latest")
    assert latest.status_code == 200
    assert latest.json()["id"] == data["id"]


async def test_run_metric_without_body_defaults_trigger(client: AsyncClient, metric_repo, make_metric):
    metric = make_metric()
    await metric_repo.save(metric)

    response = await client.post(f"/api/v1/metrics/{metric.id}/run")

    assert response.status_code == 200
    assert response.json()["triggered_by"] == "api"


async def test_run_unknown_metric_is_not_found(client: AsyncClient, execution_repo):
    response = await client.post("/api/v1/metrics/missing/run")

    assert response.status_code == 404
    assert response.json()["error_type"] == "MetricNotFoundError"
    assert response.json()["metric_id"] == "missing"
    assert execution_repo.rows == {}


async def test_failed_metric_run_is_returned_not_raised(client: AsyncClient, metric_repo, make_metric, integration_client):
    integration_client.failures["github_issues_list"] = RuntimeError("github 502")
    metric = make_metric()
    await metric_repo.save(metric)

    response = await client.post(f"/api/v1/metrics/{metric.id}/run")

    assert response.status_code == 200
    assert response.json()["status"] == "failed"
    assert response.json()["error"] == "github 502"


async def test_scheduler_run_without_secret(client: AsyncClient, metric_repo, make_metric, monkeypatch):
    monkeypatch.setattr(settings, "scheduler_secret", None)
    due = make_metric()
    manual = make_metric(execution_policy={"mode": "on_demand"})
    await metric_repo.save(due)
    await metric_repo.save(manual)

    response = await client.post("/api/v1/scheduler/run")

    assert response.status_code == 200
    assert response.json() == {"triggered": [due.id]}


async def test_scheduler_run_requires_configured_secret(client: AsyncClient, metric_repo, make_metric, monkeypatch):
    monkeypatch.setattr(settings, "scheduler_secret", "s3cret")
    metric = make_metric()
    await metric_repo.save(metric)

    unauthorized = await client.post("/api/v1/scheduler/run")
    wrong = await client.post("/api/v1/scheduler/run", headers={"Authorization": "Bearer nope"})
    assert unauthorized.status_code == 401
    assert wrong.status_code == 401

    response = await client.post(
        "/api/v1/scheduler/run",
        headers={"Authorization": "Bearer s3cret"},
        json={"org_id": "org-1"},
    )
    assert response.status_code == 200
    assert response.json() == {"triggered": [metric.id]}


async def test_scheduler_secret_uses_constant_time_comparison(client: AsyncClient, monkeypatch):
    from toolgate.server.api.v1 import scheduler as scheduler_api

    monkeypatch.setattr(settings, "scheduler_secret", "s3cret")
    compared = []
    real_compare = scheduler_api.hmac.compare_digest

    def recording_compare(a, b):
        compared.append((a, b))
        return real_compare(a, b)

    monkeypatch.setattr(scheduler_api.hmac, "compare_digest", recording_compare)

    response = await client.post("/api/v1/scheduler/run", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 200
    assert compared == [(b"Bearer s3cret", b"Bearer s3cret")]


@pytest.mark.parametrize(
    "execution_graph",
    [
        {"nodes": [{"id": "A", "type": "transform", "params": {"entry_kind": "ui"}}]},
        {"nodes": None, "edges": []},
    ],
)
async def test_validate_intent_graph_without_node_or_edge_list_is_rejected(client: AsyncClient, execution_graph):
    response = await client.post("/api/v1/intent-graphs/validate", json={"execution_graph": execution_graph})

    assert response.status_code == 200
    error = response.json()["error"]
    assert error["reason"] == "SandboxExecutionFailed"
    assert error["details"] == "Missing execution_graph"
