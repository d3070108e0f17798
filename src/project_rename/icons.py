from __future__ import annotations

import json
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from src.project_rename.commands import CommandRunner, StepWarning, run_step
from src.project_rename.config import PLATFORM_DIRS, flutter_command
from src.project_rename.files import atomic_write_bytes
from src.project_rename.manifest import manifest_path

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterator

    from src.project_rename.validation import IconRole, RenameSpec

logger = logging.getLogger(__name__)

_ICONS_BLOCK_RE = re.compile(
    r"^icons_launcher[ \t]*:[^\r\n]*(?:\r?\n(?:[ \t][^\r\n]*)?)*", re.MULTILINE
)

_ANDROID_LAYERS: tuple[tuple[IconRole, str], ...] = (
    ("adaptiveBackground", "adaptive_background_image"),
    ("adaptiveForeground", "adaptive_foreground_image"),
    ("adaptiveMonochrome", "adaptive_monochrome_image"),
    ("notification", "notification_image"),
)


class ManifestRestoreError(RuntimeError):
    """The manifest could not be put back; the build config is in an unknown state."""


@dataclass(frozen=True)
class ManifestSnapshot:
    path: Path
    content: bytes


def restore_manifest(snapshot: ManifestSnapshot) -> None:
    try:
        atomic_write_bytes(snapshot.path, snapshot.content)
        restored = snapshot.path.read_bytes()
    except OSError as exc:
        raise ManifestRestoreError(
            f"could not restore {snapshot.path}: {exc}; restore it from version control"
        ) from exc
    if restored != snapshot.content:
        raise ManifestRestoreError(
            f"{snapshot.path} differs from its snapshot after restore"
        )


@contextmanager
def scoped_manifest(path: Path) -> Iterator[ManifestSnapshot]:
    """Hold the manifest for a temporary edit and always put it back.

    The original bytes are captured on entry and written back on every exit
    path, including exceptions raised inside the block.
    """
    snapshot = ManifestSnapshot(path=path, content=path.read_bytes())
    try:
        yield snapshot
    finally:
        restore_manifest(snapshot)
        logger.debug("Restored %s", path)


def _icon_ref(path: Path, project_root: Path) -> str:
    root = project_root.resolve()
    p = path.resolve()
    if root in p.parents:
        return json.dumps(p.relative_to(root).as_posix())
    return json.dumps(p.as_posix())


def target_platforms(project_root: Path, spec: RenameSpec) -> list[str]:
    present = [p for p in PLATFORM_DIRS if (project_root / p).is_dir()]
    if "main" in spec.icon_paths:
        return present
    # Without a main image only Android's adaptive/notification layers apply.
    return [p for p in present if p == "android"]


def render_icons_config(project_root: Path, spec: RenameSpec) -> str:
    icons = spec.icon_paths
    lines = ["icons_launcher:"]
    if "main" in icons:
        lines.append(f"  image_path: {_icon_ref(icons['main'], project_root)}")
    lines.append("  platforms:")
    for platform in target_platforms(project_root, spec):
        lines.append(f"    {platform}:")
        lines.append("      enable: true")
        if platform != "android":
            continue
        for role, key in _ANDROID_LAYERS:
            if role in icons:
                lines.append(f"      {key}: {_icon_ref(icons[role], project_root)}")
    return "\n".join(lines) + "\n"


def augment_manifest(text: str, icons_config: str) -> str:
    """Append the generator config, replacing any icons_launcher block already there."""
    base = _ICONS_BLOCK_RE.sub("", text)
    if base and not base.endswith("\n"):
        base += "\n"
    return base + "\n" + icons_config


def generate_icons(
    project_root: Path, spec: RenameSpec, runner: CommandRunner
) -> list[StepWarning]:
    """Run icons_launcher against a temporarily augmented manifest.

    Generator failures come back as warnings. ManifestRestoreError is the only
    error this raises on its own account.
    """
    if not spec.has_icons:
        return []

    platforms = target_platforms(project_root, spec)
    if not platforms:
        msg = "no platform directory supports the supplied icons; skipped"
        logger.warning("icons: %s", msg)
        return [StepWarning(step="icons", message=msg)]

    path = manifest_path(project_root)
    config = render_icons_config(project_root, spec)
    with scoped_manifest(path) as snapshot:
        augmented = augment_manifest(snapshot.content.decode("utf-8"), config)
        atomic_write_bytes(path, augmented.encode("utf-8"))
        logger.info("Generating launcher icons for %s", ", ".join(platforms))
        warning = run_step(
            runner,
            "icons",
            [*flutter_command(), "pub", "run", "icons_launcher:create"],
            cwd=project_root,
        )
    return [warning] if warning is not None else []
