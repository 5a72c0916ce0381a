"""
Tests for execution metrics
"""

import pytest

from bloodlens.utils.metrics import MetricsCollector, metrics_collector, track_execution


def test_summary_counts_outcomes():
    collector = MetricsCollector()
    collector.log_execution("AIService.chat", True, 120.0)
    collector.log_execution("AIService.chat", False, 80.0, error="timeout")

    summary = collector.get_summary()

    assert summary["total_requests"] == 2
    assert summary["failed"] == 1
    assert summary["success_rate"] == "50.0%"
    assert summary["top_errors"] == [("timeout", 1)]


def test_history_is_bounded():
    collector = MetricsCollector(max_entries=3)
    for i in range(10):
        collector.log_execution(f"f{i}", True, 1.0)

    assert [m["function"] for m in collector.metrics] == ["f7", "f8", "f9"]


async def test_async_failures_are_recorded_and_reraised():
    @track_execution
    async def flaky():
        raise ValueError("upstream said no")

    with pytest.raises(ValueError):
        await flaky()

    assert metrics_collector.metrics[-1]["function"].endswith("flaky")
    assert metrics_collector.metrics[-1]["success"] is False
    assert metrics_collector.metrics[-1]["error"] == "upstream said no"
