from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from src.project_rename.commands import StepWarning

logger = logging.getLogger(__name__)

_SOURCE_SETS = ("main", "debug", "profile", "test", "androidTest")
_LANGS = ("kotlin", "java")


@dataclass(frozen=True)
class Relocation:
    source: str
    destination: str


def _prune_empty_parents(start: Path, *, stop: Path) -> None:
    d = start
    while d != stop and stop in d.parents:
        try:
            d.rmdir()
        except OSError:
            return
        d = d.parent


def relocate_android_sources(
    project_root: Path, *, old_app_id: str, new_app_id: str, dry_run: bool = False
) -> tuple[list[Relocation], list[StepWarning]]:
    """Move android/app/src/<set>/<lang>/<old id path> to the new id's path.

    Gradle doesn't care, but the Kotlin package declaration was rewritten by
    the tree pass and the directory should match it.
    """
    moved: list[Relocation] = []
    warnings: list[StepWarning] = []
    if old_app_id == new_app_id:
        return moved, warnings

    src_root = project_root / "android" / "app" / "src"
    old_rel = Path(*old_app_id.split("."))
    new_rel = Path(*new_app_id.split("."))

    for source_set in _SOURCE_SETS:
        for lang in _LANGS:
            base = src_root / source_set / lang
            old_dir = base / old_rel
            if not old_dir.is_dir():
                continue
            new_dir = base / new_rel
            rec = Relocation(
                source=old_dir.relative_to(project_root).as_posix(),
                destination=new_dir.relative_to(project_root).as_posix(),
            )
            if new_dir.exists() or old_dir in new_dir.parents:
                msg = (
                    f"cannot move {rec.source} to {rec.destination} "
                    "(destination exists or is nested in the source); move it by hand"
                )
                logger.warning(msg)
                warnings.append(StepWarning(step="android", message=msg))
                continue
            if not dry_run:
                new_dir.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(old_dir), str(new_dir))
                _prune_empty_parents(old_dir.parent, stop=base)
            logger.info("Moved %s -> %s", rec.source, rec.destination)
            moved.append(rec)
    return moved, warnings
