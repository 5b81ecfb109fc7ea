"""
Models package - imports all models so they are registered on Base.metadata
before tables are created or migrations are autogenerated.
"""

from swm_dashboard.models.gram_panchayat import GramPanchayat
from swm_dashboard.models.mrf import MRF
from swm_dashboard.models.performance_metrics import PerformanceMetrics

__all__ = [
    "GramPanchayat",
    "MRF",
    "PerformanceMetrics",
]
