from __future__ import annotations

import argparse
import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from .context import InstallContext, InstallOptions, Runner
from .errors import InstallerError
from .lib.command import CommandRunner
from .lib.net import Fetcher, fetch_text
from .lib.ports import PortProbe
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .settings import load_settings
from .steps import (
    CheckPortsStep,
    ExtractArtifactsStep,
    FetchConfigStep,
    PrepareInstallDirStep,
    PreparePlatformStep,
    PullImagesStep,
    ResolveRuntimeStep,
    SessionLingerStep,
    StartServicesStep,
    SummaryStep,
    WriteConfigStep,
)

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_steps():
    return [
        ResolveRuntimeStep(),
        PrepareInstallDirStep(),
        FetchConfigStep(),
        CheckPortsStep(),
        WriteConfigStep(),
        PullImagesStep(),
        PreparePlatformStep(),
        StartServicesStep(),
        SessionLingerStep(),
        ExtractArtifactsStep(),
        SummaryStep(),
    ]


def run(
    *,
    options: InstallOptions,
    settings_path: Optional[str] = None,
    log_path: Optional[str] = None,
    verbose: bool = False,
    runner: Optional[Runner] = None,
    fetcher: Optional[Fetcher] = None,
    port_probe: Optional[PortProbe] = None,
    which: Optional[Callable[[str], Optional[str]]] = None,
    machine: Optional[str] = None,
) -> InstallContext:
    """Run the install pipeline once. Raises InstallerError on the first fatal condition."""

    install_dir = Path(options.install_dir).expanduser()
    if log_path:
        requested_log = log_path
    elif options.dry_run and not install_dir.is_dir():
        # A dry run leaves the filesystem alone; log next to the caller instead.
        requested_log = DEFAULT_LOG_PATH
    else:
        requested_log = str(install_dir / DEFAULT_LOG_PATH)
    actual_log_path = configure_logging(log_path=requested_log, level=logging.DEBUG if verbose else logging.INFO)

    settings = load_settings(settings_path)
    ctx = InstallContext(
        options=options,
        settings=settings,
        runner=runner
        or CommandRunner(
            dry_run=options.dry_run,
            grace_period=settings.grace_period,
            default_timeout=settings.default_timeout,
        ),
        fetcher=fetcher or fetch_text,
        which=which or shutil.which,
        port_probe=port_probe,
        machine=machine,
    )

    logger.info("Starting installation process...")
    logger.debug("Log file: %s", actual_log_path)

    try:
        result = run_pipeline(ctx=ctx, steps=build_steps())
    except InstallerError:
        raise
    except Exception:
        logger.exception("Installer failed")
        raise

    logger.debug("Ran steps: %s; skipped: %s", result.ran_steps, result.skipped_steps)
    return ctx


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a port number: {value}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range (1-65535): {value}")
    return port


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rocketgraph-installer", description="Install or upgrade Rocketgraph with Docker or Podman.")
    p.add_argument("--install-dir", default=".", help="Directory for .env and docker-compose.yml (default: current directory)")
    p.add_argument("--http-port", type=_port, default=None, help="HTTP port (fresh install only)")
    p.add_argument("--https-port", type=_port, default=None, help="HTTPS port (fresh install only)")
    p.add_argument("--enterprise", action="store_true", help="Enable multi-user mode (fresh install only)")
    p.add_argument("--runtime", choices=["auto", "docker", "podman"], default="auto", help="Container runtime to use")
    p.add_argument("--license", dest="license_path", default=None, help="Path to a license file (fresh install only)")
    p.add_argument("--settings", default=None, help="YAML file overriding installer defaults")
    p.add_argument("--log", default=None, help=f"Path to installer log (default: <install-dir>/{DEFAULT_LOG_PATH})")
    p.add_argument("--verbose", action="store_true", help="Show command output on the console")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    options = InstallOptions(
        install_dir=args.install_dir,
        http_port=args.http_port,
        https_port=args.https_port,
        license_path=args.license_path,
        enterprise=bool(args.enterprise),
        runtime=args.runtime,
        dry_run=bool(args.dry_run),
    )

    try:
        run(options=options, settings_path=args.settings, log_path=args.log, verbose=bool(args.verbose))
    except InstallerError as e:
        logger.error("%s", e)
        if e.output.strip():
            logger.error("Output:\n%s", e.output.rstrip())
        return EXIT_FAILURE
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return EXIT_USAGE
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
