from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from ..context import InstallContext
from ..lib.runtime import RuntimeProfile

logger = logging.getLogger(__name__)


def _repository(image: str) -> str:
    """Strip digest, tag and registry host: docker.io/rocketgraph/xgt:2.1 -> rocketgraph/xgt."""

    ref = image.split("@", 1)[0]
    last = ref.rsplit("/", 1)[-1]
    if ":" in last:
        ref = ref[: len(ref) - len(last)] + last.split(":", 1)[0]
    parts = ref.split("/")
    if len(parts) > 1 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
        parts = parts[1:]
    if parts and parts[0] == "library":
        parts = parts[1:]
    return "/".join(parts)


def image_matches(image: str, name: str) -> bool:
    return _repository(image) == _repository(name)


class ExtractArtifactsStep:
    """Copy bundled files out of the backend image into the install directory.

    Never fatal: anything that goes wrong becomes an advisory.
    """

    step_id = "80_extract_artifacts"

    def applies(self, ctx: InstallContext) -> bool:
        return True

    def _running_container(self, ctx: InstallContext, profile: RuntimeProfile) -> Optional[str]:
        r = ctx.runner(profile.engine("ps", "--format", "{{.ID}} {{.Image}}"), timeout=ctx.settings.default_timeout)
        if not r.ok:
            return None
        for line in r.output.splitlines():
            fields = line.split()
            if len(fields) >= 2 and image_matches(fields[1], ctx.settings.backend_image):
                return fields[0]
        return None

    def _local_image(self, ctx: InstallContext, profile: RuntimeProfile) -> str:
        r = ctx.runner(
            profile.engine("images", "--format", "{{.Repository}}:{{.Tag}}"),
            timeout=ctx.settings.default_timeout,
        )
        if r.ok:
            for line in r.output.splitlines():
                ref = line.strip()
                if ref and not ref.endswith(":<none>") and image_matches(ref, ctx.settings.backend_image):
                    return ref
        return ctx.settings.backend_image

    def _copy(self, ctx: InstallContext, profile: RuntimeProfile, container: str, dest: Path) -> bool:
        src = ctx.settings.artifact_source_dir.rstrip("/") + "/."
        r = ctx.runner(profile.engine("cp", f"{container}:{src}", str(dest)), timeout=ctx.settings.default_timeout)
        if not r.ok:
            logger.info("Copy from %s failed: %s", container, r.output.strip())
        return r.ok

    def _copy_via_disposable(self, ctx: InstallContext, profile: RuntimeProfile, dest: Path) -> bool:
        image = self._local_image(ctx, profile)
        name = f"rocketgraph-artifacts-{os.getpid()}"
        timeout = ctx.settings.default_timeout

        r = ctx.runner(profile.engine("create", "--name", name, image), timeout=timeout)
        if not r.ok:
            logger.info("Could not create disposable container from %s: %s", image, r.output.strip())
            return False
        try:
            return self._copy(ctx, profile, name, dest)
        finally:
            ctx.runner(profile.engine("rm", "-f", name), timeout=timeout)

    def run(self, ctx: InstallContext) -> None:
        profile = ctx.require_profile()
        dest = ctx.install_path / ctx.settings.artifact_dest_dir

        try:
            if not ctx.options.dry_run:
                dest.mkdir(parents=True, exist_ok=True)

            container = self._running_container(ctx, profile)
            if container:
                logger.info("Extracting artifacts from running container %s", container)
                ok = self._copy(ctx, profile, container, dest)
            else:
                logger.info("No running %s container; using a disposable one", ctx.settings.backend_image)
                ok = self._copy_via_disposable(ctx, profile, dest)
        except OSError as e:
            logger.info("Artifact extraction error: %s", e)
            ok = False

        if ok:
            logger.info("Artifacts copied to %s", dest)
        else:
            ctx.advise("artifacts", "No artifacts found or extraction failed")
