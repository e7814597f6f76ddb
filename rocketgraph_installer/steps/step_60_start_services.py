from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import DeploymentFailed

logger = logging.getLogger(__name__)

PORT_HINT = "A port already bound by another process is the most common cause."


class StartServicesStep:
    step_id = "60_start_services"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        s = ctx.settings
        cwd = str(ctx.install_path)

        logger.info("Starting containers...")
        r = ctx.runner(ctx.compose("up", "-d", *s.core_services), timeout=s.up_timeout, cwd=cwd)
        if not r.ok:
            reason = f"timed out after {s.up_timeout:g}s" if r.timed_out else f"exit {r.returncode}"
            raise DeploymentFailed(f"Failed to start containers ({reason}). {PORT_HINT}", output=r.output)

        if not s.dependent_services:
            return

        logger.info("Starting dependent services: %s", ", ".join(s.dependent_services))
        r = ctx.runner(ctx.compose("up", "-d", *s.dependent_services), timeout=s.up_timeout, cwd=cwd)
        if not r.ok:
            ctx.advise(
                "start",
                f"Dependent services did not start ({', '.join(s.dependent_services)}); "
                f"check: {' '.join(ctx.compose('logs'))}",
            )
