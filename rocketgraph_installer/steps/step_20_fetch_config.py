from __future__ import annotations

import logging
import os
from pathlib import Path

from ..context import InstallContext
from ..errors import PermissionDenied, TemplateFetchFailed
from ..lib.envfile import ConfigDocument
from ..lib.net import FetchError
from ..lib.reconcile import reconcile

logger = logging.getLogger(__name__)

COMPOSE_FILE_MODE = 0o644


def _write_file(path: Path, contents: str, *, mode: int, dry_run: bool) -> None:
    if dry_run:
        logger.info("Would write %s", str(path))
        return
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(contents)
        os.chmod(path, mode)
    except PermissionError as e:
        raise PermissionDenied(f"Cannot write {path}: {e.strerror or e}") from e


class FetchConfigStep:
    """Download the compose definition and env template, then reconcile .env in memory.

    The reconciled document is written only after the port audit passes, so a
    port conflict on a fresh install leaves no .env behind and the operator can
    simply re-run with --http-port / --https-port.
    """

    step_id = "20_fetch_config"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        s = ctx.settings
        dry_run = ctx.options.dry_run
        logger.info("Downloading configuration files from %s...", s.base_url)

        compose_url = f"{s.base_url}/{s.compose_file}"
        try:
            compose_text = ctx.fetcher(compose_url, s.fetch_timeout)
        except FetchError as e:
            raise TemplateFetchFailed(f"Failed to download {s.compose_file}", output=str(e)) from e

        template = None
        template_text = None
        template_url = f"{s.base_url}/{s.template_file}"
        try:
            template_text = ctx.fetcher(template_url, s.fetch_timeout)
            template = ConfigDocument.parse(template_text)
        except FetchError as e:
            # Fatal only when there is no existing .env to fall back on; reconcile decides.
            logger.warning("Failed to download %s: %s", s.template_file, e)

        profile = ctx.require_profile()
        result = reconcile(
            template,
            ctx.env_path,
            ctx.options.overrides(),
            settings=s,
            alternate_db_image=profile.requires_platform_prepare,
        )
        ctx.reconciled = result

        for w in result.warnings:
            ctx.advise("config", w.message(s.env_file))
        for a in result.advisories:
            ctx.advise(a.source, a.message)

        _write_file(ctx.compose_path, compose_text, mode=COMPOSE_FILE_MODE, dry_run=dry_run)
        if template_text is not None:
            _write_file(ctx.template_path, template_text, mode=COMPOSE_FILE_MODE, dry_run=dry_run)

        logger.info(
            "Configuration reconciled (%s, %d warning(s))",
            "fresh install" if result.fresh else "existing .env kept",
            len(result.warnings),
        )
