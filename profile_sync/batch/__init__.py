"""
Bulk reconcile of the flattened store.
"""

from .reconcile import BulkReconciler, bulk_reconcile

__all__ = [
    "BulkReconciler",
    "bulk_reconcile",
]
