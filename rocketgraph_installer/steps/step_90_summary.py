from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.envfile import tls_enabled
from ..lib.ports import configured_port

logger = logging.getLogger(__name__)


def _url(scheme: str, port: int, default: int) -> str:
    if port == default:
        return f"{scheme}://localhost"
    return f"{scheme}://localhost:{port}"


class SummaryStep:
    step_id = "90_summary"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def urls(self, ctx: InstallContext) -> list[str]:
        s = ctx.settings
        doc = ctx.require_reconciled().document
        out = [_url("http", configured_port(doc, s.http_port_key, s.default_http_port), 80)]
        if tls_enabled(doc, public_cert_key=s.public_cert_key, private_key_key=s.private_key_key):
            out.append(_url("https", configured_port(doc, s.https_port_key, s.default_https_port), 443))
        return out

    def run(self, ctx: InstallContext) -> None:
        logger.info("Installation completed successfully!")
        for url in self.urls(ctx):
            logger.info("Rocketgraph is now running at %s", url)
        logger.info("To check the status, run: %s", " ".join(ctx.compose("ps")))
        logger.info("To view logs, run: %s", " ".join(ctx.compose("logs")))

        if ctx.advisories:
            logger.info("%d advisory message(s):", len(ctx.advisories))
            for a in ctx.advisories:
                logger.info("  [%s] %s", a.source, a.message)
