"""Declarative view/metric specification consumed by the plan compiler.

A ``DashboardSpec`` lists metrics and views. Each view names its data either
explicitly (``integration_id`` + ``table``), through a metric (inline or a
``metric_ref`` to a persisted metric), or through an explicit capability.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator

from .base import BaseSchema


class ViewType(str, Enum):
    metric = "metric"
    line_chart = "line_chart"
    bar_chart = "bar_chart"
    table = "table"
    heatmap = "heatmap"
    query = "query"


class QuerySort(BaseSchema):
    field: str
    direction: Literal["asc", "desc"] = "asc"


class QuerySpec(BaseSchema):
    filters: Dict[str, Any] = Field(default_factory=dict)
    sort: Optional[QuerySort] = None
    limit: Optional[int] = Field(default=None, ge=1)
    group_by: List[str] = Field(default_factory=list)


class MetricRef(BaseSchema):
    id: str
    version: Optional[int] = None


class MetricSpec(BaseSchema):
    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: Optional[Literal["count", "sum"]] = None
    table: Optional[str] = None
    field: Optional[str] = None
    group_by: Optional[Literal["day"]] = None
    integration_id: Optional[str] = None
    metric_ref: Optional[MetricRef] = None

    @model_validator(mode="after")
    def _inline_or_ref(self) -> "MetricSpec":
        if not (self.type and self.table) and self.metric_ref is None:
            raise ValueError("Metric must provide either inline definition (type, table) or metric_ref")
        return self


class ViewSpec(BaseSchema):
    id: str = Field(min_length=1)
    type: ViewType = ViewType.table
    metric_id: Optional[str] = None
    table: Optional[str] = None
    integration_id: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    capability: Optional[str] = None
    query: Optional[QuerySpec] = None


class DashboardSpec(BaseSchema):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    metrics: List[MetricSpec] = Field(default_factory=list)
    views: List[ViewSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "DashboardSpec":
        metric_ids = [m.id for m in self.metrics]
        if len(metric_ids) != len(set(metric_ids)):
            raise ValueError("metric ids must be unique")
        view_ids = [v.id for v in self.views]
        if len(view_ids) != len(set(view_ids)):
            raise ValueError("view ids must be unique")
        return self

    def metric(self, metric_id: str) -> Optional[MetricSpec]:
        for m in self.metrics:
            if m.id == metric_id:
                return m
        return None
