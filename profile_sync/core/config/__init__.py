"""
Projection policy configuration.
"""

from .projection_config import (
    ProjectionConfig,
    ProjectionConfigLoader,
    ReconcileSettings,
    load_projection_config,
)

__all__ = [
    "ProjectionConfig",
    "ProjectionConfigLoader",
    "ReconcileSettings",
    "load_projection_config",
]
