"""
Projection policy configuration.

Loads the flattening and propagation policy from YAML files and provides
defaults when no file is present.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = "config/projection.yaml"


class ReconcileSettings(BaseModel):
    """Bulk reconcile settings."""

    batch_size: int = Field(500, ge=1)
    strict_dedup: bool = False


class ProjectionConfig(BaseModel):
    """
    Policy knobs for the normalizer, propagator and reconciler.

    Attributes:
        current_sentinels: End-date tokens marking an ongoing position
        collections_include_current: Whether the current position feeds
            previous_companies, job_titles and industries
        search_variant: "structured" or "document" search representation
        notify_channel: PostgreSQL NOTIFY channel carrying change events
        reconcile: Bulk reconcile settings
    """

    current_sentinels: list[str] = Field(
        default_factory=lambda: ["current", "present", "ongoing"]
    )
    collections_include_current: bool = True
    search_variant: Literal["structured", "document"] = "structured"
    notify_channel: str = "profile_changes"
    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)

    @field_validator("current_sentinels")
    @classmethod
    def normalize_sentinels(cls, v):
        tokens = [token.strip().lower() for token in v if token and token.strip()]
        if not tokens:
            raise ValueError("current_sentinels must contain at least one token")
        return tokens


class ProjectionConfigLoader:
    """
    Loads projection policy from a YAML configuration file.

    Expected YAML format:
    ```yaml
    projection:
      current_sentinels: [current, present, ongoing]
      collections_include_current: true
      search_variant: structured
      notify_channel: profile_changes
      reconcile:
        batch_size: 500
        strict_dedup: false
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Projection configuration file not found: {config_path}")

    def load(self) -> ProjectionConfig:
        """
        Load and parse the projection policy.

        Returns:
            ProjectionConfig instance

        Raises:
            ValueError: If the YAML is missing the 'projection' section
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "projection" not in config:
            raise ValueError("Configuration file must contain 'projection' section")

        section: dict[str, Any] = config["projection"] or {}
        return ProjectionConfig(**section)


def load_projection_config(config_path: str | Path | None = None) -> ProjectionConfig:
    """
    Load projection config, falling back to defaults when the file is absent.

    Args:
        config_path: Optional path; defaults to config/projection.yaml

    Returns:
        ProjectionConfig instance
    """
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    if not path.exists():
        if config_path is not None:
            raise FileNotFoundError(f"Projection configuration file not found: {config_path}")
        return ProjectionConfig()
    return ProjectionConfigLoader(path).load()
