from __future__ import annotations

import logging
import shutil
import socket
from typing import Callable, List, Optional

from ..errors import InstallerError, PortConflict
from ..settings import InstallerSettings
from .command import CmdResult
from .envfile import ConfigDocument, tls_enabled

logger = logging.getLogger(__name__)

PortProbe = Callable[[int], bool]
Runner = Callable[..., CmdResult]

LSOF_TIMEOUT = 10.0


def configured_port(doc: ConfigDocument, key: str, default: int) -> int:
    raw = doc.get(key)
    if raw is None or raw == "":
        return default
    try:
        port = int(raw)
    except ValueError as e:
        raise InstallerError(f"{key}={raw} is not a valid port number") from e
    if not 0 < port < 65536:
        raise InstallerError(f"{key}={raw} is out of range (1-65535)")
    return port


def port_set(doc: ConfigDocument, *, settings: InstallerSettings) -> List[int]:
    """Ports the application will bind: HTTP always, HTTPS only when TLS is enabled."""

    ports = {configured_port(doc, settings.http_port_key, settings.default_http_port)}
    if tls_enabled(doc, public_cert_key=settings.public_cert_key, private_key_key=settings.private_key_key):
        ports.add(configured_port(doc, settings.https_port_key, settings.default_https_port))
    return sorted(ports)


def _connect_probe(port: int) -> bool:
    for host in ("127.0.0.1", "::1"):
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        try:
            with socket.socket(family, socket.SOCK_STREAM) as s:
                s.settimeout(0.5)
                if s.connect_ex((host, port)) == 0:
                    return True
        except OSError:
            continue
    return False


def make_port_probe(runner: Runner, *, which: Callable[[str], Optional[str]] = shutil.which) -> PortProbe:
    """Listening-socket query: lsof when installed, TCP connect otherwise."""

    has_lsof = bool(which("lsof"))

    def probe(port: int) -> bool:
        if has_lsof:
            r = runner(["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN"], timeout=LSOF_TIMEOUT)
            if r.timed_out:
                logger.info("lsof timed out for port %s; falling back to connect probe", port)
                return _connect_probe(port)
            # lsof exits 1 with no output when nothing matches.
            return r.returncode == 0 and bool(r.output.strip())
        return _connect_probe(port)

    return probe


def check_ports(doc: ConfigDocument, *, settings: InstallerSettings, probe: PortProbe) -> List[int]:
    """Return the busy ports out of the document's port set (empty when all are free)."""

    busy: List[int] = []
    for port in port_set(doc, settings=settings):
        in_use = probe(port)
        logger.info("Port %s: %s", port, "in use" if in_use else "free")
        if in_use:
            busy.append(port)
    return busy


def audit_ports(
    doc: ConfigDocument,
    *,
    settings: InstallerSettings,
    probe: PortProbe,
    fresh: bool,
    env_path: str = ".env",
) -> List[int]:
    """Raise PortConflict if any port the application needs is already bound."""

    busy = check_ports(doc, settings=settings, probe=probe)
    if not busy:
        return port_set(doc, settings=settings)

    if fresh:
        hint = (
            "Stop the process using it, or choose another port with --http-port / --https-port."
        )
    else:
        hint = (
            f"Stop the process using it, or change {settings.http_port_key} / "
            f"{settings.https_port_key} in {env_path}."
        )
    raise PortConflict(busy, hint=hint)
