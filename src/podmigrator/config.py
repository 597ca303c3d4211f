"""
Configuration for the migration orchestrator.

This module provides OrchestratorConfig, the immutable set of defaults and
timing parameters shared by every migration job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_TIMEOUT_SECONDS = 600.0
DEFAULT_CHECKPOINT_SIZE = "1Gi"
DEFAULT_READINESS_TIMEOUT_SECONDS = 300.0
DEFAULT_SETTLE_DELAY_SECONDS = 30.0
DEFAULT_CPU_ESTIMATE_RATIO = 0.5
DEFAULT_MEMORY_ESTIMATE_RATIO = 0.6
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Configuration for migration jobs.

    This class is immutable (frozen) so a running job never observes a
    changed setting.

    Attributes:
        default_timeout_seconds: Job deadline when a request specifies 0
        checkpoint_size: Storage size requested for checkpoint volumes
        readiness_timeout_seconds: Sub-deadline for the new pod to become ready
        settle_delay_seconds: Wait before sampling post-migration usage
        cpu_estimate_ratio: CPU multiplier for estimated post-migration usage
        memory_estimate_ratio: Memory multiplier for estimated post-migration usage
        shutdown_timeout_seconds: Drain window used by shutdown() by default
        checkpoint_labels: Extra labels attached to every checkpoint claim

    Example:
        >>> config = OrchestratorConfig(settle_delay_seconds=5.0)
        >>> config.readiness_timeout_seconds
        300.0
    """

    default_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    checkpoint_size: str = DEFAULT_CHECKPOINT_SIZE
    readiness_timeout_seconds: float = DEFAULT_READINESS_TIMEOUT_SECONDS
    settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS
    cpu_estimate_ratio: float = DEFAULT_CPU_ESTIMATE_RATIO
    memory_estimate_ratio: float = DEFAULT_MEMORY_ESTIMATE_RATIO
    shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS
    checkpoint_labels: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.default_timeout_seconds <= 0:
            raise ValueError(
                f"default_timeout_seconds must be > 0, got {self.default_timeout_seconds}"
            )

        if self.readiness_timeout_seconds <= 0:
            raise ValueError(
                f"readiness_timeout_seconds must be > 0, got {self.readiness_timeout_seconds}"
            )

        if self.settle_delay_seconds < 0:
            raise ValueError(
                f"settle_delay_seconds must be >= 0, got {self.settle_delay_seconds}"
            )

        if not self.checkpoint_size:
            raise ValueError("checkpoint_size must not be empty")

        for name in ("cpu_estimate_ratio", "memory_estimate_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")

        if self.shutdown_timeout_seconds < 0:
            raise ValueError(
                f"shutdown_timeout_seconds must be >= 0, got {self.shutdown_timeout_seconds}"
            )

    def resolve_timeout(self, requested: float) -> float:
        """
        Apply the default deadline when a request asks for none.

        Args:
            requested: Timeout from the request in seconds (0 = default)

        Returns:
            Effective deadline in seconds
        """
        return float(requested) if requested > 0 else self.default_timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for logging or JSON output.

        Returns:
            Dictionary representation.
        """
        return {
            "default_timeout_seconds": self.default_timeout_seconds,
            "checkpoint_size": self.checkpoint_size,
            "readiness_timeout_seconds": self.readiness_timeout_seconds,
            "settle_delay_seconds": self.settle_delay_seconds,
            "cpu_estimate_ratio": self.cpu_estimate_ratio,
            "memory_estimate_ratio": self.memory_estimate_ratio,
            "shutdown_timeout_seconds": self.shutdown_timeout_seconds,
            "checkpoint_labels": dict(self.checkpoint_labels),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrchestratorConfig:
        """
        Create from dictionary, falling back to defaults for missing keys.

        Args:
            data: Dictionary containing configuration values.

        Returns:
            OrchestratorConfig instance.
        """
        return cls(
            default_timeout_seconds=data.get("default_timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
            checkpoint_size=data.get("checkpoint_size", DEFAULT_CHECKPOINT_SIZE),
            readiness_timeout_seconds=data.get(
                "readiness_timeout_seconds", DEFAULT_READINESS_TIMEOUT_SECONDS
            ),
            settle_delay_seconds=data.get("settle_delay_seconds", DEFAULT_SETTLE_DELAY_SECONDS),
            cpu_estimate_ratio=data.get("cpu_estimate_ratio", DEFAULT_CPU_ESTIMATE_RATIO),
            memory_estimate_ratio=data.get(
                "memory_estimate_ratio", DEFAULT_MEMORY_ESTIMATE_RATIO
            ),
            shutdown_timeout_seconds=data.get(
                "shutdown_timeout_seconds", DEFAULT_SHUTDOWN_TIMEOUT_SECONDS
            ),
            checkpoint_labels=dict(data.get("checkpoint_labels", {})),
        )


__all__ = ["OrchestratorConfig"]
