from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .errors import Advisory
from .lib.command import CmdResult
from .lib.net import Fetcher, fetch_text
from .lib.ports import PortProbe
from .lib.reconcile import ConfigOverrides, ReconcileResult
from .lib.runtime import RuntimeProfile
from .settings import InstallerSettings

logger = logging.getLogger(__name__)

Runner = Callable[..., CmdResult]


@dataclass(frozen=True)
class InstallOptions:
    install_dir: str = "."
    http_port: Optional[int] = None
    https_port: Optional[int] = None
    license_path: Optional[str] = None
    enterprise: bool = False
    runtime: str = "auto"
    dry_run: bool = False

    def overrides(self) -> ConfigOverrides:
        return ConfigOverrides(
            http_port=self.http_port,
            https_port=self.https_port,
            license_path=self.license_path,
            enterprise=self.enterprise,
        )


@dataclass
class InstallContext:
    """Everything a step needs, passed explicitly instead of via the process environment."""

    options: InstallOptions
    settings: InstallerSettings
    runner: Runner
    fetcher: Fetcher = fetch_text
    which: Callable[[str], Optional[str]] = shutil.which
    port_probe: Optional[PortProbe] = None
    machine: Optional[str] = None

    profile: Optional[RuntimeProfile] = None
    reconciled: Optional[ReconcileResult] = None
    ports: List[int] = field(default_factory=list)
    advisories: List[Advisory] = field(default_factory=list)

    @property
    def install_path(self) -> Path:
        return Path(self.options.install_dir).expanduser().resolve()

    @property
    def env_path(self) -> Path:
        return self.install_path / self.settings.env_file

    @property
    def compose_path(self) -> Path:
        return self.install_path / self.settings.compose_file

    @property
    def template_path(self) -> Path:
        return self.install_path / self.settings.template_file

    def require_profile(self) -> RuntimeProfile:
        if self.profile is None:
            raise RuntimeError("runtime profile not resolved yet")
        return self.profile

    def require_reconciled(self) -> ReconcileResult:
        if self.reconciled is None:
            raise RuntimeError("configuration not reconciled yet")
        return self.reconciled

    def compose(self, *args: str) -> List[str]:
        return self.require_profile().compose(
            "-p", self.settings.project_name, "-f", str(self.compose_path), *args
        )

    def advise(self, source: str, message: str) -> None:
        logger.warning("%s", message)
        self.advisories.append(Advisory(source=source, message=message))
