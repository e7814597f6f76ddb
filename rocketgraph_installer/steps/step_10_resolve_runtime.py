from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.runtime import candidates_for, resolve_runtime

logger = logging.getLogger(__name__)


class ResolveRuntimeStep:
    step_id = "10_resolve_runtime"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        if ctx.profile is not None:
            raise RuntimeError("runtime profile already resolved")

        ctx.profile = resolve_runtime(
            candidates_for(ctx.options.runtime),
            runner=ctx.runner,
            which=ctx.which,
            probe_timeout=ctx.settings.probe_timeout,
            machine=ctx.machine,
        )
