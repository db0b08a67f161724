"""Metric scheduling and execution caching.

- ``MetricScheduler``: runs a metric through its pending/running/completed|failed
  lifecycle and decides when scheduled metrics are due.
- ``MetricSchedulerLoop``: background task calling ``run_due_metrics`` at an interval.
"""

from .loop import MetricSchedulerLoop
from .scheduler import EXEC_VIEW_ID, MetricScheduler, is_due, system_context, wrap_metric_in_spec

__all__ = [
    "EXEC_VIEW_ID",
    "MetricScheduler",
    "MetricSchedulerLoop",
    "is_due",
    "system_context",
    "wrap_metric_in_spec",
]
