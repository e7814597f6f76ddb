from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.reconcile import write_document

logger = logging.getLogger(__name__)


class WriteConfigStep:
    step_id = "35_write_config"

    def applies(self, ctx: InstallContext) -> bool:
        # An existing .env is never rewritten.
        return ctx.require_reconciled().fresh

    def run(self, ctx: InstallContext) -> None:
        result = ctx.require_reconciled()
        if ctx.options.dry_run:
            logger.info("Would write %s", str(ctx.env_path))
            return

        write_document(result.document, ctx.env_path)
        logger.info("Created %s", str(ctx.env_path))
