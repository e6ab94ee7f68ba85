"""
Incremental change propagation.
"""

from .propagator import ChangePropagator

__all__ = ["ChangePropagator"]
