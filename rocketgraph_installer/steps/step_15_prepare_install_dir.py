from __future__ import annotations

import logging
import os

from ..context import InstallContext
from ..errors import InstallerError, PermissionDenied

logger = logging.getLogger(__name__)


class PrepareInstallDirStep:
    step_id = "15_prepare_install_dir"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        install_dir = ctx.install_path
        logger.info("Using installation directory at %s", install_dir)

        if ctx.options.dry_run and not install_dir.exists():
            logger.info("Would create %s", install_dir)
            return

        try:
            install_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionDenied(f"Cannot create installation directory {install_dir}: {e.strerror or e}") from e

        if not install_dir.is_dir():
            raise InstallerError(f"Installation path {install_dir} is not a directory")

        if not os.access(install_dir, os.W_OK | os.X_OK):
            raise PermissionDenied(
                f"Installation directory {install_dir} is not writable. "
                "Re-run with sufficient privileges or pass --install-dir."
            )
