"""
Migration pipeline.

A generic runner for declarative step lists, the five migration steps, and
the executor that drives one job through them.
"""

from podmigrator.pipeline.executor import CANCELLED_MESSAGE, MigrationExecutor, error_message
from podmigrator.pipeline.runner import (
    PipelineRunner,
    PipelineStep,
    StepOutcome,
    StepPolicy,
    StepResult,
)
from podmigrator.pipeline.steps import (
    MIGRATION_STEPS,
    MigrationContext,
    capture_container_states,
    collect_optimized_usage,
    create_checkpoint,
    create_target_workload,
    delete_original_workload,
)

__all__ = [
    "CANCELLED_MESSAGE",
    "MIGRATION_STEPS",
    "MigrationContext",
    "MigrationExecutor",
    "PipelineRunner",
    "PipelineStep",
    "StepOutcome",
    "StepPolicy",
    "StepResult",
    "capture_container_states",
    "collect_optimized_usage",
    "create_checkpoint",
    "create_target_workload",
    "delete_original_workload",
    "error_message",
]
