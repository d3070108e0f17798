from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from src.project_rename.config import command_timeout_s

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepWarning:
    step: str
    message: str


class CommandRunner(Protocol):
    def run(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]: ...


@dataclass
class SubprocessRunner:
    timeout_s: int | None = None

    def run(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            args,
            cwd=cwd,
            env=env,
            text=True,
            capture_output=True,
            check=check,
            timeout=self.timeout_s or command_timeout_s(),
        )


def _tail(text: str | None, limit: int = 2000) -> str:
    s = (text or "").strip()
    if len(s) <= limit:
        return s
    return "...\n" + s[-limit:]


def run_step(
    runner: CommandRunner, step: str, args: list[str], *, cwd: Path
) -> StepWarning | None:
    """Run one external command; a failure becomes a warning, never an exception."""
    logger.info("Running %s", " ".join(args))
    try:
        cp = runner.run(args, cwd=str(cwd), check=False)
    except FileNotFoundError:
        msg = f"{args[0]} not found on PATH; run `{' '.join(args)}` yourself"
        logger.warning("%s: %s", step, msg)
        return StepWarning(step=step, message=msg)
    except OSError as exc:
        msg = f"could not start `{' '.join(args)}`: {exc}"
        logger.warning("%s: %s", step, msg)
        return StepWarning(step=step, message=msg)
    except subprocess.TimeoutExpired as exc:
        msg = f"`{' '.join(args)}` timed out after {exc.timeout}s"
        logger.warning("%s: %s", step, msg)
        return StepWarning(step=step, message=msg)

    if cp.returncode != 0:
        detail = _tail(cp.stderr) or _tail(cp.stdout)
        msg = f"`{' '.join(args)}` exited with {cp.returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        logger.warning("%s: %s", step, msg)
        return StepWarning(step=step, message=msg)
    return None
