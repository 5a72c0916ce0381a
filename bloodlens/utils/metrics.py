"""
Timing and success metrics for calls to external collaborators
(language model, payment gateway)
"""

import asyncio
import logging
import time
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Collects and logs execution metrics, kept in memory for /health
    """

    def __init__(self, max_entries: int = 1000):
        self.metrics = []
        self.max_entries = max_entries

    def log_execution(
        self,
        function_name: str,
        success: bool,
        duration_ms: float,
        error: Optional[str] = None,
    ):
        metric = {
            "timestamp": datetime.now().isoformat(),
            "function": function_name,
            "success": success,
            "duration_ms": round(duration_ms, 2),
            "error": error,
        }

        self.metrics.append(metric)
        if len(self.metrics) > self.max_entries:
            del self.metrics[: len(self.metrics) - self.max_entries]

        if success:
            logger.info(f"[METRICS] {function_name} | {duration_ms:.0f}ms")
        else:
            logger.error(f"[METRICS] {function_name} | {duration_ms:.0f}ms | Error: {error}")

    def get_summary(self) -> Dict[str, Any]:
        if not self.metrics:
            return {"total_requests": 0}

        total = len(self.metrics)
        success = sum(1 for m in self.metrics if m["success"])
        avg_duration = sum(m["duration_ms"] for m in self.metrics) / total

        function_counts = {}
        for m in self.metrics:
            function_counts[m["function"]] = function_counts.get(m["function"], 0) + 1

        error_counts = {}
        for m in self.metrics:
            if not m["success"] and m.get("error"):
                error_counts[m["error"]] = error_counts.get(m["error"], 0) + 1

        return {
            "total_requests": total,
            "successful": success,
            "failed": total - success,
            "success_rate": f"{success/total*100:.1f}%",
            "avg_duration_ms": round(avg_duration, 2),
            "top_functions": sorted(function_counts.items(), key=lambda x: x[1], reverse=True)[:5],
            "top_errors": sorted(error_counts.items(), key=lambda x: x[1], reverse=True)[:5],
        }


# Global instance
metrics_collector = MetricsCollector()


def track_execution(func):
    """
    Decorator that records duration and outcome of a sync or async call
    """
    if asyncio.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            error = None
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                error = str(e)
                raise
            finally:
                metrics_collector.log_execution(
                    function_name=func.__qualname__,
                    success=error is None,
                    duration_ms=(time.time() - start_time) * 1000,
                    error=error,
                )
        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        error = None
        try:
            return func(*args, **kwargs)
        except Exception as e:
            error = str(e)
            raise
        finally:
            metrics_collector.log_execution(
                function_name=func.__qualname__,
                success=error is None,
                duration_ms=(time.time() - start_time) * 1000,
                error=error,
            )

    return wrapper
