"""
Declarative pipeline runner.

A pipeline is an ordered list of PipelineStep descriptors. Each step is
tagged with a failure policy:

    FAIL_FAST    the first failure stops the pipeline with StepFailedError
    BEST_EFFORT  failures are logged, reported to ``on_contained`` and the
                 pipeline moves on

A deadline passed to ``run`` bounds the fail-fast steps only; expiry there
propagates as TimeoutError. Best-effort steps run after the point of no
return and are never interrupted by the runner, so a step that must respect
the deadline reads it from its context.

The runner knows nothing about migrations, so the policy table can be tested
with plain coroutines.

Example:
    >>> runner = PipelineRunner([
    ...     PipelineStep("prepare", StepPolicy.FAIL_FAST, prepare),
    ...     PipelineStep("cleanup", StepPolicy.BEST_EFFORT, cleanup),
    ... ])
    >>> outcomes = await runner.run(context)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from podmigrator.exceptions import StepFailedError
from podmigrator.observability import (
    ATTR_ERROR_TYPE,
    ATTR_STEP_NAME,
    ATTR_STEP_POLICY,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

C = TypeVar("C")


class StepPolicy(Enum):
    """Failure policy of a pipeline step."""

    FAIL_FAST = "fail_fast"
    """Failure aborts the pipeline."""

    BEST_EFFORT = "best_effort"
    """Failure is logged and contained."""


class StepResult(Enum):
    """How a step ended."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineStep(Generic[C]):
    """
    Descriptor of one pipeline step.

    Attributes:
        name: Step name used in logs, spans and error messages
        policy: What a failure does to the pipeline
        action: Coroutine function receiving the pipeline context
        condition: Predicate on the context; the step is skipped when it
            returns False (None = always run)
    """

    name: str
    policy: StepPolicy
    action: Callable[[C], Awaitable[None]]
    condition: Callable[[C], bool] | None = None

    def applies_to(self, context: C) -> bool:
        return self.condition is None or self.condition(context)


@dataclass(frozen=True)
class StepOutcome:
    """Result of running one step."""

    name: str
    policy: StepPolicy
    result: StepResult
    error: Exception | None = None


ContainedErrorHook = Callable[[PipelineStep, Exception], Awaitable[None]]


class PipelineRunner(Generic[C]):
    """
    Executes pipeline steps strictly in order.

    Cancellation is never treated as a step failure: ``asyncio.CancelledError``
    always propagates so deadlines and shutdown can stop the pipeline.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep[C]],
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Pipeline step names must be unique, got {names}")
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[PipelineStep[C], ...]:
        return self._steps

    async def run(
        self,
        context: C,
        *,
        deadline: float | None = None,
        on_contained: ContainedErrorHook | None = None,
        log_prefix: str = "",
    ) -> list[StepOutcome]:
        """
        Run every step against the context.

        Args:
            context: Object passed to each step's action and condition
            deadline: Event loop time bounding the fail-fast steps (None = no bound)
            on_contained: Awaited with (step, error) for each best-effort failure
            log_prefix: Prepended to log messages (e.g., the job ID)

        Returns:
            One outcome per step, in order

        Raises:
            StepFailedError: When a fail-fast step fails
            TimeoutError: When the deadline passes during a fail-fast step
        """
        outcomes: list[StepOutcome] = []

        for step in self._steps:
            if not step.applies_to(context):
                logger.debug("%sskipping step %s", log_prefix, step.name)
                outcomes.append(StepOutcome(step.name, step.policy, StepResult.SKIPPED))
                continue

            attributes = {ATTR_STEP_NAME: step.name, ATTR_STEP_POLICY: step.policy.value}
            with self._tracer.span("podmigrator.pipeline.step", attributes) as span:
                logger.debug("%srunning step %s", log_prefix, step.name)
                bound = deadline if step.policy == StepPolicy.FAIL_FAST else None
                scope = asyncio.timeout_at(bound)
                try:
                    async with scope:
                        await step.action(context)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    if scope.expired():
                        logger.debug("%sdeadline reached during step %s", log_prefix, step.name)
                        raise
                    if span is not None:
                        span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)

                    if step.policy == StepPolicy.FAIL_FAST:
                        logger.error("%sstep %s failed: %s", log_prefix, step.name, e)
                        raise StepFailedError(step.name, e) from e

                    logger.warning(
                        "%sstep %s failed, continuing: %s",
                        log_prefix,
                        step.name,
                        e,
                        extra={"step": step.name, "error_type": type(e).__name__},
                    )
                    outcomes.append(StepOutcome(step.name, step.policy, StepResult.FAILED, e))
                    if on_contained is not None:
                        await on_contained(step, e)
                    continue

            outcomes.append(StepOutcome(step.name, step.policy, StepResult.SUCCEEDED))

        return outcomes


__all__ = [
    "StepPolicy",
    "StepResult",
    "PipelineStep",
    "StepOutcome",
    "PipelineRunner",
]
