from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx
import pytest

from toolgate.exec_core.policy.models import OrgPolicy
from toolgate.exec_core.providers import DiscoveredSchema, IntegrationServices
from toolgate.exec_core.schemas.domain import Permission
from toolgate.exec_core.schemas.metrics import (
    ExecutionPolicyMode,
    Metric,
    MetricExecution,
    MetricExecutionStatus,
    apply_transition,
)

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class InMemoryMetricRepository:
    def __init__(self) -> None:
        self.items: Dict[str, Metric] = {}

    async def get(self, metric_id: str) -> Optional[Metric]:
        return self.items.get(metric_id)

    async def save(self, metric: Metric) -> None:
        self.items[metric.id] = metric

    async def list_scheduled(self, org_id: Optional[str] = None) -> List[Metric]:
        return [
            m
            for m in self.items.values()
            if m.execution_policy.mode == ExecutionPolicyMode.scheduled and (org_id is None or m.org_id == org_id)
        ]


class InMemoryMetricExecutionRepository:
    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.rows: Dict[str, MetricExecution] = {}
        self._clock = clock

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock is not None else None

    def seed(self, execution: MetricExecution) -> MetricExecution:
        self.rows[execution.id] = execution
        return execution

    async def create(self, metric_id: str, triggered_by: str) -> MetricExecution:
        execution = MetricExecution(metric_id=metric_id, triggered_by=triggered_by)
        if self._clock is not None:
            execution = execution.model_copy(update={"started_at": self._clock()})
        self.rows[execution.id] = execution
        return execution

    async def get(self, execution_id: str) -> Optional[MetricExecution]:
        return self.rows.get(execution_id)

    async def update_status(
        self,
        execution_id: str,
        status: MetricExecutionStatus,
        *,
        result: Any = None,
        error: Optional[str] = None,
    ) -> Optional[MetricExecution]:
        current = self.rows.get(execution_id)
        if current is None:
            return None
        updated = apply_transition(current, status, result=result, error=error, now=self._now())
        self.rows[execution_id] = updated
        return updated

    async def latest_completed(self, metric_id: str) -> Optional[MetricExecution]:
        completed = [
            e
            for e in self.rows.values()
            if e.metric_id == metric_id and e.status == MetricExecutionStatus.completed and e.completed_at is not None
        ]
        if not completed:
            return None
        return max(completed, key=lambda e: e.completed_at)

    def for_metric(self, metric_id: str) -> List[MetricExecution]:
        return [e for e in self.rows.values() if e.metric_id == metric_id]


class InMemoryConnectionRepository:
    def __init__(self, connected: Optional[Dict[str, List[str]]] = None) -> None:
        self.connected: Dict[str, List[str]] = dict(connected or {})

    async def list_connected_integrations(self, org_id: str) -> List[str]:
        return list(self.connected.get(org_id, []))

    async def upsert(self, org_id: str, integration_id: str, *, encrypted_credentials: Optional[str] = None) -> None:
        integrations = self.connected.setdefault(org_id, [])
        if integration_id not in integrations:
            integrations.append(integration_id)


class InMemoryOrgPolicyRepository:
    def __init__(self, policies: Iterable[OrgPolicy] = ()) -> None:
        self.policies: List[OrgPolicy] = list(policies)

    async def list_for_org(self, org_id: str) -> List[OrgPolicy]:
        return [p for p in self.policies if p.org_id == org_id]

    async def save(self, policy: OrgPolicy) -> None:
        self.policies = [p for p in self.policies if p.id != policy.id] + [policy]


class InMemoryPermissionGrantRepository:
    def __init__(self) -> None:
        self.grants: List[Tuple[str, Optional[str], Permission]] = []

    def seed(self, org_id: str, *permissions: Permission, user_id: Optional[str] = None) -> None:
        self.grants.extend((org_id, user_id, p) for p in permissions)

    async def list_for_subject(self, org_id: str, user_id: Optional[str] = None) -> List[Permission]:
        return [p for org, user, p in self.grants if org == org_id and user in (None, user_id)]

    async def grant(self, org_id: str, permission: Permission, *, user_id: Optional[str] = None) -> None:
        if (org_id, user_id, permission) not in self.grants:
            self.grants.append((org_id, user_id, permission))


class FakeCredentialProvider:
    def __init__(self) -> None:
        self.requests: List[tuple] = []

    async def get_valid_access_token(self, org_id: str, integration_id: str) -> str:
        self.requests.append((org_id, integration_id))
        return f"token-{integration_id}"


class FakeIntegrationClient:
    """Records calls and answers from ``responses`` (or raises from ``failures``)."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    async def call(self, capability_id: str, params: Dict[str, Any], *, access_token: str) -> Any:
        self.calls.append((capability_id, params, access_token))
        if capability_id in self.failures:
            raise self.failures[capability_id]
        return self.responses.get(capability_id, [])


class FakeSchemaDiscovery:
    def __init__(self, schemas: Iterable[dict] = ()) -> None:
        self.schemas = [DiscoveredSchema.model_validate(s) for s in schemas]

    async def get_discovered_schemas(self, org_id: str) -> List[DiscoveredSchema]:
        return list(self.schemas)


class RecordingAlertEvaluator:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: List[tuple] = []
        self._error = error

    async def evaluate_alerts(self, metric_id: str, result: Any, execution_id: str) -> None:
        self.calls.append((metric_id, result, execution_id))
        if self._error is not None:
            raise self._error


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://test",
        "http://localhost",
        "http://127.0.0.1",
        "/",  # Relative paths (ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        if _is_allowed(str(url)):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"Blocked outbound HTTP in tests: {method} {url}")

    async def offline_async(self, method, url, *args, **kwargs):
        if _is_allowed(str(url)):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"Blocked outbound HTTP in tests: {method} {url}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async)
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metric_repo() -> InMemoryMetricRepository:
    return InMemoryMetricRepository()


@pytest.fixture
def execution_repo(clock: FakeClock) -> InMemoryMetricExecutionRepository:
    return InMemoryMetricExecutionRepository(clock)


@pytest.fixture
def policy_repo() -> InMemoryOrgPolicyRepository:
    return InMemoryOrgPolicyRepository()


@pytest.fixture
def connection_repo() -> InMemoryConnectionRepository:
    return InMemoryConnectionRepository()


@pytest.fixture
def grant_repo() -> InMemoryPermissionGrantRepository:
    return InMemoryPermissionGrantRepository()


@pytest.fixture
def integration_client() -> FakeIntegrationClient:
    return FakeIntegrationClient(
        {
            "github_issues_list": [{"id": 1, "state": "open"}, {"id": 2, "state": "open"}],
            "slack_message_post": {"ok": True, "ts": "1700000000.000100"},
        }
    )


@pytest.fixture
def credentials() -> FakeCredentialProvider:
    return FakeCredentialProvider()


@pytest.fixture
def services(credentials: FakeCredentialProvider, integration_client: FakeIntegrationClient) -> IntegrationServices:
    return IntegrationServices(
        credentials=credentials,
        clients={"github": integration_client, "slack": integration_client, "linear": integration_client},
    )


@pytest.fixture
def make_metric():
    """Factory for metric definitions; keyword arguments override the defaults."""

    def _make(**overrides: Any) -> Metric:
        data: Dict[str, Any] = {
            "org_id": "org-1",
            "name": "Open issues",
            "integration_id": "github",
            "resource": "issues",
            "definition": {"type": "count", "filters": {"state": "open"}},
            "execution_policy": {"mode": "scheduled", "ttl_seconds": 3600},
        }
        data.update(overrides)
        return Metric.model_validate(data)

    return _make


@pytest.fixture
def make_schema_discovery():
    return FakeSchemaDiscovery


@pytest.fixture
def make_alert_evaluator():
    return RecordingAlertEvaluator
