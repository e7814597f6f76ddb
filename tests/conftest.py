from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from rocketgraph_installer.context import InstallContext, InstallOptions
from rocketgraph_installer.lib.command import CmdResult
from rocketgraph_installer.lib.net import FetchError
from rocketgraph_installer.settings import InstallerSettings

TEMPLATE = """\
# Rocketgraph environment
MC_PORT=80
#MC_SSL_PORT=443
#MC_SSL_PUBLIC_CERT=/certs/server.crt
#MC_SSL_PRIVATE_KEY=/certs/server.key

# Licensing
#XGT_LICENSE_FILE=/path/to/xgtd.lic
MC_SINGLE_USER=true
#MC_MONGODB_IMAGE=mongo:4.4.18
XGT_MEMORY=16
"""

COMPOSE = "services:\n  xgt:\n    image: rocketgraph/xgt\n"

BASE_URL = "https://install.rocketgraph.ai"


def _contains(argv: Sequence[str], fragment: Sequence[str]) -> bool:
    n = len(fragment)
    return any(list(argv[i : i + n]) == list(fragment) for i in range(len(argv) - n + 1))


class FakeRunner:
    """Records every argv; answers from rules matched on a contiguous argv fragment."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self._rules: List[Tuple[Tuple[str, ...], CmdResult]] = []

    def on(self, *fragment: str, returncode: int = 0, output: str = "", timed_out: bool = False) -> "FakeRunner":
        self._rules.insert(
            0, (fragment, CmdResult(argv=list(fragment), returncode=returncode, output=output, timed_out=timed_out))
        )
        return self

    def __call__(self, argv, *, timeout=None, cwd=None, env=None) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.timeouts.append(timeout)
        for fragment, result in self._rules:
            if _contains(argv, fragment):
                return CmdResult(argv=argv, returncode=result.returncode, output=result.output, timed_out=result.timed_out)
        return CmdResult(argv=argv, returncode=0, output="")

    def ran(self, *fragment: str) -> bool:
        return any(_contains(argv, fragment) for argv in self.calls)


class FakeFetcher:
    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files = dict(files or {})
        self.urls: List[str] = []

    def __call__(self, url: str, timeout: float) -> str:
        self.urls.append(url)
        name = url.rsplit("/", 1)[-1]
        if name not in self.files:
            raise FetchError(f"{url}: HTTP 404")
        return self.files[name]


def fake_which(*present: str):
    available = set(present)
    return lambda name: f"/usr/bin/{name}" if name in available else None


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher({"docker-compose.yml": COMPOSE, "env.template": TEMPLATE})


@pytest.fixture
def settings() -> InstallerSettings:
    return InstallerSettings()


@pytest.fixture
def make_ctx(tmp_path, runner, fetcher, settings):
    def _make(**option_overrides) -> InstallContext:
        options = InstallOptions(install_dir=str(tmp_path), **option_overrides)
        return InstallContext(
            options=options,
            settings=settings,
            runner=runner,
            fetcher=fetcher,
            which=fake_which("docker"),
            port_probe=lambda port: False,
            machine="x86_64",
        )

    return _make


@pytest.fixture(autouse=True)
def _quiet_root_logger():
    # configure_logging() marks the root logger; reset between tests.
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for attr in ("_rocketgraph_configured", "_rocketgraph_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
