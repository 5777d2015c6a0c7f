"""Run toolchain probes like `cargo -vV` and `rustup -V`.

Planning is pure; this is the one place a subprocess is started, and only to
learn what the host has installed. A probe that can't run is not fatal:
callers fall back to what platform detection can tell them.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from distplan.core.result import Err, Ok, Result

__all__ = ["ProbeError", "run"]

PROBE_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class ProbeError:
    """Why a probe gave no output.

    `returncode` is None when the tool never ran (not installed, timed out).
    """

    command: tuple[str, ...]
    reason: str
    returncode: int | None = None

    def __str__(self) -> str:
        where = f"exit {self.returncode}" if self.returncode is not None else self.reason
        return f"`{' '.join(self.command)}` failed ({where})"


def run(
    cmd: list[str], cwd: Path, *, timeout: float = PROBE_TIMEOUT
) -> Result[str, ProbeError]:
    """Run a probe and return its stdout."""
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        return Err(ProbeError(command=command, reason="not found"))
    except subprocess.TimeoutExpired:
        return Err(ProbeError(command=command, reason=f"timed out after {timeout}s"))
    except OSError as e:
        return Err(ProbeError(command=command, reason=str(e)))

    if proc.returncode != 0:
        return Err(
            ProbeError(
                command=command,
                reason=proc.stderr.strip() or "no output",
                returncode=proc.returncode,
            )
        )
    return Ok(proc.stdout)
