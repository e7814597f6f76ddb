from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import DeploymentFailed

logger = logging.getLogger(__name__)


class PullImagesStep:
    step_id = "40_pull_images"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        logger.info("Pulling latest container images...")
        r = ctx.runner(ctx.compose("pull"), timeout=ctx.settings.pull_timeout, cwd=str(ctx.install_path))
        if r.timed_out:
            raise DeploymentFailed(
                f"Pulling container images timed out after {ctx.settings.pull_timeout:g}s",
                output=r.output,
            )
        if not r.ok:
            raise DeploymentFailed("Failed to pull container images", output=r.output)
