from __future__ import annotations

import logging

import pytest

from toolgate.exec_core.factory import build_default_registry
from toolgate.exec_core.planning.compiler import PlanCompiler
from toolgate.exec_core.planning.executor import SpecExecutor, infer_schema
from toolgate.exec_core.planning.validation import SpecSchemaValidator
from toolgate.exec_core.runtime.context import ExecutionContext
from toolgate.exec_core.schemas.domain import AccessLevel, ExecutionResultStatus, ExecutionSource, Permission
from toolgate.exec_core.schemas.metrics import MetricExecution, MetricExecutionStatus
from toolgate.exec_core.schemas.specs import DashboardSpec


class _BrokenDiscovery:
    async def get_discovered_schemas(self, org_id):
        raise ConnectionError("schema service down")


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def executor(registry, metric_repo, execution_repo, clock) -> SpecExecutor:
    return SpecExecutor(registry, PlanCompiler(registry, metrics=metric_repo, executions=execution_repo, clock=clock))


@pytest.fixture
def context(services) -> ExecutionContext:
    return ExecutionContext(org_id="org-1", permissions=[Permission(access=AccessLevel.read)], deps=services)


def _spec(views, metrics=()) -> DashboardSpec:
    return DashboardSpec.model_validate({"title": "Overview", "metrics": list(metrics), "views": list(views)})


@pytest.mark.asyncio
async def test_execute_returns_live_results_keyed_by_view(executor, context, integration_client) -> None:
    results = await executor.execute("org-1", _spec([{"id": "issues", "integration_id": "github", "table": "issues"}]), context)

    result = results["issues"]
    assert result.status == ExecutionResultStatus.success
    assert result.source == ExecutionSource.live_api
    assert result.rows == [{"id": 1, "state": "open"}, {"id": 2, "state": "open"}]
    assert integration_client.calls == [("github_issues_list", {}, "token-github")]


@pytest.mark.asyncio
async def test_failing_view_does_not_fail_siblings(executor, context, integration_client) -> None:
    integration_client.failures["slack_channels_list"] = RuntimeError("slack unavailable")
    spec = _spec(
        [
            {"id": "issues", "integration_id": "github", "table": "issues"},
            {"id": "channels", "integration_id": "slack", "table": "channels"},
            {"id": "wikis", "integration_id": "github", "table": "wikis"},
        ]
    )

    results = await executor.execute("org-1", spec, context)

    assert results["issues"].status == ExecutionResultStatus.success
    assert results["channels"].status == ExecutionResultStatus.error
    assert results["channels"].error == "slack unavailable"
    assert results["wikis"].error == "Unknown capability ID: github_wikis_list"


@pytest.mark.asyncio
async def test_permission_denied_becomes_view_error(executor, services, integration_client) -> None:
    ctx = ExecutionContext(org_id="org-1", permissions=[], deps=services)

    results = await executor.execute("org-1", _spec([{"id": "issues", "integration_id": "github", "table": "issues"}]), ctx)

    assert results["issues"].status == ExecutionResultStatus.error
    assert "Permission denied" in (results["issues"].error or "")
    assert integration_client.calls == []


@pytest.mark.asyncio
async def test_cached_metric_is_idempotent_with_zero_calls(
    executor, context, metric_repo, execution_repo, clock, make_metric, integration_client
) -> None:
    metric = make_metric()
    await metric_repo.save(metric)
    execution_repo.seed(
        MetricExecution(
            metric_id=metric.id,
            status=MetricExecutionStatus.completed,
            started_at=clock(),
            completed_at=clock(),
            result=[{"id": 9}],
        )
    )
    spec = _spec(
        [{"id": "v", "type": "metric", "metric_id": "m"}],
        metrics=[{"id": "m", "label": "Open issues", "metric_ref": {"id": metric.id}}],
    )

    first = await executor.execute("org-1", spec, context)
    second = await executor.execute("org-1", spec, context)

    assert first == second
    assert first["v"].source == ExecutionSource.cached
    assert integration_client.calls == []

    refreshed = await executor.execute("org-1", spec, context, force_refresh=True)
    assert refreshed["v"].source == ExecutionSource.live_api
    assert len(integration_client.calls) == 1


@pytest.mark.asyncio
async def test_schema_validation_failure_is_advisory(
    registry, metric_repo, execution_repo, context, caplog: pytest.LogCaptureFixture
) -> None:
    executor = SpecExecutor(
        registry,
        PlanCompiler(registry, metrics=metric_repo, executions=execution_repo),
        schema_validator=SpecSchemaValidator(_BrokenDiscovery()),
    )

    with caplog.at_level(logging.WARNING, logger="toolgate.exec_core.planning.executor"):
        results = await executor.execute(
            "org-1", _spec([{"id": "issues", "integration_id": "github", "table": "issues"}]), context
        )

    assert results["issues"].status == ExecutionResultStatus.success
    assert "Schema validation unavailable" in caplog.text


@pytest.mark.asyncio
async def test_schema_warnings_do_not_block_execution(
    registry, metric_repo, execution_repo, context, make_schema_discovery
) -> None:
    executor = SpecExecutor(
        registry,
        PlanCompiler(registry, metrics=metric_repo, executions=execution_repo),
        schema_validator=SpecSchemaValidator(make_schema_discovery([])),
    )

    results = await executor.execute(
        "org-1", _spec([{"id": "issues", "type": "table", "integration_id": "github", "table": "issues"}]), context
    )

    assert results["issues"].status == ExecutionResultStatus.success
    assert executor.compiler is not None


class _RecordingSink:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.persisted = []

    async def persist_schema(self, org_id, schema):
        if self.error is not None:
            raise self.error
        self.persisted.append((org_id, schema))


def _executor_with_sink(registry, metric_repo, execution_repo, clock, sink) -> SpecExecutor:
    compiler = PlanCompiler(registry, metrics=metric_repo, executions=execution_repo, clock=clock)
    return SpecExecutor(registry, compiler, schema_sink=sink)


def test_infer_schema_collects_fields_and_types() -> None:
    schema = infer_schema(
        "github",
        "issues",
        [
            {"id": 1, "title": "Bug", "assignee": None},
            "not-a-row",
            {"id": 2, "assignee": "ada", "labels": ["bug"], "closed": False, "meta": {"x": 1}},
        ],
    )

    assert schema.integration_id == "github"
    assert schema.resource == "issues"
    assert [(f.name, f.type) for f in schema.fields] == [
        ("id", "number"),
        ("title", "string"),
        ("assignee", "string"),
        ("labels", "array"),
        ("closed", "boolean"),
        ("meta", "object"),
    ]


@pytest.mark.asyncio
async def test_live_rows_feed_inferred_schema_to_sink(registry, metric_repo, execution_repo, clock, context) -> None:
    sink = _RecordingSink()
    executor = _executor_with_sink(registry, metric_repo, execution_repo, clock, sink)

    await executor.execute("org-1", _spec([{"id": "issues", "integration_id": "github", "table": "issues"}]), context)

    assert len(sink.persisted) == 1
    org_id, schema = sink.persisted[0]
    assert org_id == "org-1"
    assert (schema.integration_id, schema.resource) == ("github", "issues")
    assert [f.name for f in schema.fields] == ["id", "state"]


@pytest.mark.asyncio
async def test_schema_sink_failure_keeps_view_result(registry, metric_repo, execution_repo, clock, context, caplog) -> None:
    sink = _RecordingSink(error=RuntimeError("schema store down"))
    executor = _executor_with_sink(registry, metric_repo, execution_repo, clock, sink)

    with caplog.at_level(logging.WARNING):
        results = await executor.execute(
            "org-1", _spec([{"id": "issues", "integration_id": "github", "table": "issues"}]), context
        )

    assert results["issues"].status == ExecutionResultStatus.success
    assert "Failed to infer/persist schema for github/issues: schema store down" in caplog.text


@pytest.mark.asyncio
async def test_no_schema_inferred_for_failed_or_non_list_results(
    registry, metric_repo, execution_repo, clock, context, integration_client
) -> None:
    integration_client.responses["slack_channels_list"] = {"channels": []}
    integration_client.failures["github_issues_list"] = RuntimeError("github 502")
    sink = _RecordingSink()
    executor = _executor_with_sink(registry, metric_repo, execution_repo, clock, sink)

    results = await executor.execute(
        "org-1",
        _spec(
            [
                {"id": "issues", "integration_id": "github", "table": "issues"},
                {"id": "channels", "integration_id": "slack", "table": "channels"},
            ]
        ),
        context,
    )

    assert results["issues"].status == ExecutionResultStatus.error
    assert results["channels"].status == ExecutionResultStatus.success
    assert sink.persisted == []
