from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import IO, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
DEFAULT_GRACE_PERIOD = 5.0
DEFAULT_POLL_INTERVAL = 1.0

# Exit status reported when the binary cannot be started at all (shell convention).
NOT_FOUND_RETURNCODE = 127


@dataclass(frozen=True)
class CmdResult:
    argv: List[str]
    returncode: int
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _drain(stream: IO[bytes], chunks: List[bytes]) -> None:
    # Owns the pipe: closes it at EOF, which may come after run_cmd has returned.
    try:
        while True:
            chunk = stream.read1(65536)  # type: ignore[attr-defined]
            if not chunk:
                break
            chunks.append(chunk)
    except (OSError, ValueError):
        pass
    finally:
        stream.close()


def _signal_child(p: subprocess.Popen, *, force: bool) -> None:
    try:
        if os.name == "posix":
            # The child leads its own process group; take its children down with it.
            os.killpg(p.pid, signal.SIGKILL if force else signal.SIGTERM)
        elif force:
            p.kill()
        else:
            p.terminate()
    except (ProcessLookupError, PermissionError):
        pass


def _stop_child(p: subprocess.Popen, *, grace_period: float) -> None:
    logger.warning("Timeout: sending SIGTERM to pid=%s", p.pid)
    _signal_child(p, force=False)
    try:
        p.wait(timeout=grace_period)
        return
    except subprocess.TimeoutExpired:
        pass

    logger.warning("pid=%s ignored SIGTERM; sending SIGKILL", p.pid)
    _signal_child(p, force=True)
    try:
        p.wait(timeout=grace_period)
    except subprocess.TimeoutExpired:
        # Stuck in uninterruptible sleep; nothing more can be done from userspace.
        logger.error("pid=%s did not exit after SIGKILL", p.pid)


def run_cmd(
    argv: Sequence[str],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
    grace_period: float = DEFAULT_GRACE_PERIOD,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> CmdResult:
    """Run a command under a hard deadline.

    - Always logs the command.
    - stdout and stderr are captured into a single buffer.
    - Never raises for command failures: a missing binary is returncode 127,
      an expired deadline is `timed_out=True` with whatever output was captured.
    - On expiry the child gets SIGTERM, then SIGKILL after `grace_period`.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, output="")

    try:
        p = subprocess.Popen(
            argv_list,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            start_new_session=(os.name == "posix"),
        )
    except OSError as e:
        logger.debug("Could not start %s: %s", argv_list[0] if argv_list else "", e)
        return CmdResult(argv=argv_list, returncode=NOT_FOUND_RETURNCODE, output=f"{e}\n")

    chunks: List[bytes] = []
    assert p.stdout is not None
    reader = threading.Thread(target=_drain, args=(p.stdout, chunks), daemon=True)
    reader.start()

    deadline = time.monotonic() + timeout
    timed_out = False
    try:
        while p.poll() is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                _stop_child(p, grace_period=grace_period)
                break
            try:
                p.wait(timeout=min(poll_interval, remaining))
            except subprocess.TimeoutExpired:
                continue
    except BaseException:
        # Ctrl-C does not reach a child in its own session; stop it before unwinding.
        _stop_child(p, grace_period=grace_period)
        raise
    finally:
        # A grandchild that escaped the process group may still hold the pipe open.
        reader.join(timeout=min(grace_period, 1.0) if timed_out else grace_period)

    output = b"".join(chunks).decode("utf-8", errors="replace")

    # Still unreaped only when SIGKILL itself could not land.
    returncode = p.returncode if p.returncode is not None else -9
    if output:
        logger.debug("OUTPUT %s", output.strip())
    if timed_out:
        logger.warning("Command timed out after %ss: %s", timeout, _fmt_argv(argv_list))

    return CmdResult(argv=argv_list, returncode=returncode, output=output, timed_out=timed_out)


@dataclass(frozen=True)
class CommandRunner:
    """Callable wrapper around run_cmd carrying per-run defaults.

    Steps receive one of these through the install context, so tests can
    substitute a recorder without patching subprocess.
    """

    dry_run: bool = False
    grace_period: float = DEFAULT_GRACE_PERIOD
    poll_interval: float = DEFAULT_POLL_INTERVAL
    default_timeout: float = DEFAULT_TIMEOUT

    def __call__(
        self,
        argv: Sequence[str],
        *,
        timeout: Optional[float] = None,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CmdResult:
        return run_cmd(
            argv,
            timeout=self.default_timeout if timeout is None else timeout,
            cwd=cwd,
            env=env,
            dry_run=self.dry_run,
            grace_period=self.grace_period,
            poll_interval=self.poll_interval,
        )
