from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.ports import audit_ports, make_port_probe

logger = logging.getLogger(__name__)


class CheckPortsStep:
    step_id = "30_check_ports"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        result = ctx.require_reconciled()
        probe = ctx.port_probe or make_port_probe(ctx.runner, which=ctx.which)

        ctx.ports = audit_ports(
            result.document,
            settings=ctx.settings,
            probe=probe,
            fresh=result.fresh,
            env_path=str(ctx.env_path),
        )
        logger.info("Ports available: %s", ", ".join(str(p) for p in ctx.ports))
