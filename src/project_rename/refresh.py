from __future__ import annotations

from pathlib import Path

from src.project_rename.commands import CommandRunner, StepWarning, run_step
from src.project_rename.config import flutter_command


def refresh_dependencies(project_root: Path, runner: CommandRunner) -> list[StepWarning]:
    """Drop build caches keyed by the old identity, then re-fetch packages.

    Both steps always run; failures come back as warnings.
    """
    flutter = flutter_command()
    warnings: list[StepWarning] = []
    for step, args in (
        ("refresh.clean", [*flutter, "clean"]),
        ("refresh.pub_get", [*flutter, "pub", "get"]),
    ):
        w = run_step(runner, step, args, cwd=project_root)
        if w is not None:
            warnings.append(w)
    return warnings
