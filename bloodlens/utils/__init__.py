"""
Utility modules for BloodLens backend
"""

from .metrics import metrics_collector, track_execution, MetricsCollector

__all__ = [
    "metrics_collector",
    "track_execution",
    "MetricsCollector",
]
