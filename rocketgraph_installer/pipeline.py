from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .context import InstallContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single phase of the install."""

    step_id: str

    def applies(self, ctx: InstallContext) -> bool:
        ...

    def run(self, ctx: InstallContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(*, ctx: InstallContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps strictly in order; the first exception stops the run."""

    ran: List[str] = []
    skipped: List[str] = []

    for step in steps:
        if not step.applies(ctx):
            logger.info("Skipping step %s (not applicable)", step.step_id)
            skipped.append(step.step_id)
            continue

        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        ran.append(step.step_id)

    return PipelineResult(ran_steps=ran, skipped_steps=skipped)
