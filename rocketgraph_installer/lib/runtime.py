from __future__ import annotations

import logging
import os
import platform
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Type

from ..errors import RuntimeUnavailable
from .command import CmdResult

logger = logging.getLogger(__name__)

Runner = Callable[..., CmdResult]
Which = Callable[[str], Optional[str]]

X86_ARCHES = {"amd64", "i386"}


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "i386": "i386",
        "i686": "i386",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
    }.get(m, m)


@dataclass(frozen=True)
class RuntimeProfile(ABC):
    """The engine/compose pair chosen for this run. Immutable once resolved."""

    engine_name: str
    compose_invocation: Tuple[str, ...]
    architecture: str

    kind: ClassVar[str] = ""

    def engine(self, *args: str) -> List[str]:
        return [self.engine_name, *args]

    def compose(self, *args: str) -> List[str]:
        return [*self.compose_invocation, *args]

    @property
    def requires_platform_prepare(self) -> bool:
        # Non-x86 hosts run an alternate database image whose volume needs an ownership fix.
        return self.architecture not in X86_ARCHES

    @property
    def requires_session_linger(self) -> bool:
        return False

    @abstractmethod
    def ownership_fix(self, mountpoint: str, owner: str) -> List[str]:
        ...

    def describe(self) -> str:
        return f"{self.kind} ({' '.join(self.compose_invocation)}, arch={self.architecture})"


@dataclass(frozen=True)
class DockerRuntime(RuntimeProfile):
    kind: ClassVar[str] = "docker"

    def ownership_fix(self, mountpoint: str, owner: str) -> List[str]:
        return ["chown", "-R", owner, mountpoint]


@dataclass(frozen=True)
class PodmanRuntime(RuntimeProfile):
    rootless: bool = False

    kind: ClassVar[str] = "podman"

    @property
    def requires_session_linger(self) -> bool:
        # User-session containers die at logout unless lingering is enabled.
        return self.rootless

    def ownership_fix(self, mountpoint: str, owner: str) -> List[str]:
        # Rootless volumes live in the user namespace; chown must run inside it.
        if self.rootless:
            return [self.engine_name, "unshare", "chown", "-R", owner, mountpoint]
        return ["chown", "-R", owner, mountpoint]


RUNTIME_VARIANTS: Dict[str, Type[RuntimeProfile]] = {
    "docker": DockerRuntime,
    "podman": PodmanRuntime,
}


@dataclass(frozen=True)
class RuntimeCandidate:
    engine: str
    compose: Tuple[str, ...]

    def label(self) -> str:
        return f"{self.engine} + {' '.join(self.compose)}"


DEFAULT_CANDIDATES: Tuple[RuntimeCandidate, ...] = (
    RuntimeCandidate("docker", ("docker", "compose")),
    RuntimeCandidate("docker", ("docker-compose",)),
    RuntimeCandidate("podman", ("podman", "compose")),
    RuntimeCandidate("podman", ("podman-compose",)),
)


def candidates_for(preference: str = "auto") -> List[RuntimeCandidate]:
    pref = (preference or "auto").lower()
    if pref == "auto":
        return list(DEFAULT_CANDIDATES)
    if pref not in RUNTIME_VARIANTS:
        raise ValueError(f"Unknown runtime preference: {preference}")
    return [c for c in DEFAULT_CANDIDATES if c.engine == pref]


def _is_rootless() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return bool(geteuid and geteuid() != 0)


def _failure_text(label: str, what: str, r: CmdResult, timeout: float) -> str:
    if r.timed_out:
        return f"[{label}] {what} timed out after {timeout:g}s\n{r.output}"
    return f"[{label}] {what} failed (exit {r.returncode})\n{r.output}"


def _probe(
    c: RuntimeCandidate,
    *,
    runner: Runner,
    which: Which,
    probe_timeout: float,
) -> Tuple[int, str]:
    """Return (stage reached, diagnostic). Stage 3 means fully usable."""

    label = c.label()
    if not which(c.engine):
        return 0, f"[{label}] {c.engine}: not found on PATH\n"

    r = runner([c.engine, "ps"], timeout=probe_timeout)
    if not r.ok:
        return 1, _failure_text(label, f"{c.engine} ps", r, probe_timeout)

    if c.compose[0] != c.engine and not which(c.compose[0]):
        return 2, f"[{label}] {c.compose[0]}: not found on PATH\n"

    r = runner([*c.compose, "version"], timeout=probe_timeout)
    if not r.ok:
        return 2, _failure_text(label, f"{' '.join(c.compose)} version", r, probe_timeout)

    return 3, ""


def resolve_runtime(
    candidates: Sequence[RuntimeCandidate],
    *,
    runner: Runner,
    which: Which = shutil.which,
    probe_timeout: float = 15.0,
    machine: Optional[str] = None,
    rootless: Optional[bool] = None,
) -> RuntimeProfile:
    """Pick the first candidate whose engine and compose frontend both respond."""

    best_stage = -1
    best_diag = ""

    for c in candidates:
        stage, diag = _probe(c, runner=runner, which=which, probe_timeout=probe_timeout)
        if stage == 3:
            arch = normalize_arch(machine or platform.machine())
            variant = RUNTIME_VARIANTS[c.engine]
            if variant is PodmanRuntime:
                profile: RuntimeProfile = PodmanRuntime(
                    engine_name=c.engine,
                    compose_invocation=c.compose,
                    architecture=arch,
                    rootless=_is_rootless() if rootless is None else rootless,
                )
            else:
                profile = variant(engine_name=c.engine, compose_invocation=c.compose, architecture=arch)
            logger.info("Runtime: %s", profile.describe())
            return profile

        logger.info("Runtime candidate rejected: %s", diag.splitlines()[0] if diag else c.label())
        if stage > best_stage:
            best_stage = stage
            best_diag = diag

    tried = ", ".join(c.label() for c in candidates) or "none"
    raise RuntimeUnavailable(
        f"No working container runtime found (tried: {tried}). "
        "Install Docker (https://docs.docker.com/get-docker/) or Podman and make sure the daemon is running.",
        output=best_diag,
    )
