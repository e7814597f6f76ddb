from __future__ import annotations

import getpass
import logging

from ..context import InstallContext

logger = logging.getLogger(__name__)


class SessionLingerStep:
    step_id = "70_session_linger"

    def applies(self, ctx: InstallContext) -> bool:
        return ctx.require_profile().requires_session_linger

    def run(self, ctx: InstallContext) -> None:
        try:
            user = getpass.getuser()
        except (OSError, KeyError) as e:
            # No USER/LOGNAME and no passwd entry, common inside containers.
            ctx.advise(
                "linger",
                f"Could not determine the current user ({e}); containers may stop when you log out. "
                "Run: loginctl enable-linger <user>",
            )
            return

        r = ctx.runner(["loginctl", "enable-linger", user], timeout=ctx.settings.default_timeout)
        if not r.ok:
            ctx.advise(
                "linger",
                f"Could not enable lingering for {user}; containers may stop when you log out. "
                f"Run: loginctl enable-linger {user}",
            )
            return
        logger.info("Enabled session lingering for %s", user)
