"""
Small ordered step runner for multi-step operations that cannot be a single
transaction (delete a row, then delete the files it pointed at).

A required step that fails stops the run and re-raises. A best-effort step
that fails is logged, recorded in the report, and the run moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Awaitable[object]]
    required: bool = True


@dataclass
class SagaReport:
    completed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {"completed": list(self.completed), "failed": dict(self.failed)}


async def run_saga(steps: list[SagaStep]) -> SagaReport:
    report = SagaReport()
    for step in steps:
        try:
            await step.action()
        except Exception as e:
            if step.required:
                raise
            logger.warning("best-effort step %s failed: %s", step.name, e)
            report.failed[step.name] = str(e) or e.__class__.__name__
            continue
        report.completed.append(step.name)
    return report
