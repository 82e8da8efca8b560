"""Prometheus metrics for breakdown outcomes, expansion failures and request latency"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from paycheck_planner.domain.models import PaycheckBreakdown

# Breakdown metrics
breakdown_counter = Counter(
    "paycheck_breakdowns_total",
    "Paycheck breakdowns computed",
    ["outcome"],  # surplus | deficit
)

breakdown_duration_histogram = Histogram(
    "breakdown_computation_seconds",
    "Time to compute a full breakdown pass",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Data integrity metrics
expansion_failure_counter = Counter(
    "recurrence_expansion_failures_total",
    "Items excluded from a period because their schedule could not be expanded",
    ["source"],  # recurring | debt
)

unknown_frequency_counter = Counter(
    "unknown_frequency_total",
    "Items submitted with an unrecognized frequency",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_breakdowns(breakdowns: Iterable[PaycheckBreakdown]) -> None:
    """Record per-period outcomes and any expansion failures"""
    for breakdown in breakdowns:
        outcome = "deficit" if breakdown.is_deficit else "surplus"
        breakdown_counter.labels(outcome=outcome).inc()
        for issue in breakdown.expansion_issues:
            expansion_failure_counter.labels(source=issue.source_kind).inc()
