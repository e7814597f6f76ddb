from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


class InstallerError(RuntimeError):
    """Fatal installer condition.

    `output` carries the captured diagnostic text of the failing external
    call, printed verbatim by the CLI.
    """

    def __init__(self, message: str, *, output: Optional[str] = None) -> None:
        super().__init__(message)
        self.output = output or ""


class RuntimeUnavailable(InstallerError):
    pass


# Name used by the resolver contract.
NoRuntimeAvailable = RuntimeUnavailable


class TemplateFetchFailed(InstallerError):
    pass


class PortConflict(InstallerError):
    def __init__(self, ports: Iterable[int], *, hint: str = "") -> None:
        self.ports = sorted(set(int(p) for p in ports))
        joined = ", ".join(str(p) for p in self.ports)
        message = f"Port(s) already in use: {joined}"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class DeploymentFailed(InstallerError):
    pass


class PermissionDenied(InstallerError):
    pass


@dataclass(frozen=True)
class Advisory:
    """Non-fatal finding: logged, reported in the summary, never stops the run."""

    source: str
    message: str
