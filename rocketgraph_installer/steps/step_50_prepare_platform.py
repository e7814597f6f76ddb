from __future__ import annotations

import logging
from typing import List, Optional

from ..context import InstallContext
from ..lib.runtime import RuntimeProfile

logger = logging.getLogger(__name__)


class PreparePlatformStep:
    """Volume and permission fix-ups needed by the alternate database image.

    Everything here is best-effort: a failure is reported and the install
    continues, since ownership can be fixed by hand afterwards.
    """

    step_id = "50_prepare_platform"

    def applies(self, ctx: InstallContext) -> bool:
        return ctx.require_profile().requires_platform_prepare

    def _leftover_containers(self, ctx: InstallContext, profile: RuntimeProfile, name: str) -> List[str]:
        r = ctx.runner(
            profile.engine(
                "ps",
                "-a",
                "--filter",
                f"name=^{name}$",
                "--filter",
                "status=exited",
                "--filter",
                "status=created",
                "--format",
                "{{.Names}}",
            ),
            timeout=ctx.settings.default_timeout,
        )
        if not r.ok:
            return []
        return [ln.strip() for ln in r.output.splitlines() if ln.strip()]

    def _remove_leftovers(self, ctx: InstallContext, profile: RuntimeProfile) -> None:
        for name in ctx.settings.prepare_containers:
            for leftover in self._leftover_containers(ctx, profile, name):
                logger.info("Removing leftover container %s from a previous attempt", leftover)
                r = ctx.runner(profile.engine("rm", "-f", leftover), timeout=ctx.settings.default_timeout)
                if not r.ok:
                    ctx.advise("platform", f"Could not remove leftover container {leftover}: {r.output.strip()}")

    def _ensure_volume(self, ctx: InstallContext, profile: RuntimeProfile) -> Optional[str]:
        volume = ctx.settings.prepare_volume
        timeout = ctx.settings.default_timeout
        inspect = profile.engine("volume", "inspect", "--format", "{{.Mountpoint}}", volume)

        r = ctx.runner(inspect, timeout=timeout)
        if not r.ok:
            logger.info("Creating volume %s", volume)
            created = ctx.runner(profile.engine("volume", "create", volume), timeout=timeout)
            if not created.ok and "already exists" not in created.output.lower():
                ctx.advise("platform", f"Could not create volume {volume}: {created.output.strip()}")
                return None
            r = ctx.runner(inspect, timeout=timeout)
            if not r.ok:
                ctx.advise("platform", f"Could not inspect volume {volume}: {r.output.strip()}")
                return None

        lines = [ln.strip() for ln in r.output.splitlines() if ln.strip()]
        return lines[0] if lines else None

    def run(self, ctx: InstallContext) -> None:
        profile = ctx.require_profile()
        owner = ctx.settings.prepare_owner
        logger.info("Preparing platform for arch=%s", profile.architecture)

        self._remove_leftovers(ctx, profile)

        mountpoint = self._ensure_volume(ctx, profile)
        if not mountpoint:
            if not ctx.options.dry_run:
                ctx.advise("platform", f"Volume {ctx.settings.prepare_volume} has no mountpoint; skipped ownership fix")
            return

        argv = profile.ownership_fix(mountpoint, owner)
        r = ctx.runner(argv, timeout=ctx.settings.default_timeout)
        if not r.ok:
            ctx.advise(
                "platform",
                f"Could not set ownership {owner} on {mountpoint}; fix it manually with: {' '.join(argv)}",
            )
            return
        logger.info("Ownership of %s set to %s", mountpoint, owner)
