"""Sequential saga runner with automatic rollback.

A saga is an ordered list of ``SagaStep`` objects. Each step's action
receives the results gathered so far (a dict keyed by step name) and
returns its own result. When a step raises, the compensators of every step
that already succeeded run in reverse order, each with the result its own
action produced, and ``SagaFailed`` is raised carrying the original error.

Example:
    run_saga([
        SagaStep("reserve_stock", reserve, compensate=release),
        SagaStep("persist_order", persist),
    ])
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: Callable[[dict[str, Any]], Any]
    compensate: Callable[[Any], None] | None = None


class SagaFailed(Exception):  # noqa: N818
    def __init__(self, step: str, error: Exception, compensators_run: int, compensators_failed: int):
        self.step = step
        self.error = error
        self.compensators_run = compensators_run
        self.compensators_failed = compensators_failed
        super().__init__(f"Saga step '{step}' failed: {error}")

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


def run_compensators(completed: list[tuple[SagaStep, Any]]) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    comp_run = 0
    comp_failed = 0

    for step, value in reversed(completed):
        if step.compensate is None:
            continue
        try:
            step.compensate(value)
            comp_run += 1
        except Exception:
            comp_failed += 1
            logger.exception("Saga compensation failed", step=step.name)

    return comp_run, comp_failed


def run_saga(steps: list[SagaStep]) -> dict[str, Any]:
    """Execute steps in order; roll back the completed ones if any step raises.

    Returns:
        The results of every step, keyed by step name.

    Raises:
        SagaFailed: wrapping the first error, after compensation has run.
    """
    results: dict[str, Any] = {}
    completed: list[tuple[SagaStep, Any]] = []

    for step in steps:
        try:
            value = step.action(results)
        except Exception as exc:
            comp_run, comp_failed = run_compensators(completed)
            logger.warning(
                "Saga step failed",
                step=step.name,
                error=str(exc),
                compensators_run=comp_run,
                compensators_failed=comp_failed,
            )
            raise SagaFailed(step.name, exc, comp_run, comp_failed) from exc

        results[step.name] = value
        completed.append((step, value))

    return results
