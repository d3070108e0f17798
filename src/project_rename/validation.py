from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Literal, Mapping

from src.project_rename.config import DEFAULT_APP_ID, DEFAULT_APP_NAME, DEFAULT_VERSION

IconRole = Literal[
    "main",
    "adaptiveBackground",
    "adaptiveForeground",
    "adaptiveMonochrome",
    "notification",
]

_SEGMENT_RE = re.compile(r"^[a-z][a-z0-9]*$")
_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+(\+\d+)?$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_PASCAL_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")


class RenameValidationError(ValueError):
    """Raised for the first input field that fails validation."""

    def __init__(self, field: str, message: str, problems: list[str] | None = None) -> None:
        self.field = field
        self.message = message
        self.problems = list(problems or [])
        super().__init__(f"{field}: {message}")


@dataclass(frozen=True)
class RenameRequest:
    name: str | None = None
    app_id: str | None = None
    description: str | None = None
    version: str | None = None
    icon: str | None = None
    adaptive_background: str | None = None
    adaptive_foreground: str | None = None
    adaptive_monochrome: str | None = None
    notification_icon: str | None = None
    old_app_id: str | None = None
    old_name: str | None = None

    def icon_inputs(self) -> dict[IconRole, str]:
        pairs: list[tuple[IconRole, str | None]] = [
            ("main", self.icon),
            ("adaptiveBackground", self.adaptive_background),
            ("adaptiveForeground", self.adaptive_foreground),
            ("adaptiveMonochrome", self.adaptive_monochrome),
            ("notification", self.notification_icon),
        ]
        return {role: v.strip() for role, v in pairs if v and v.strip()}


@dataclass(frozen=True)
class RenameSpec:
    old_app_id: str
    new_app_id: str
    old_app_name: str
    new_app_name: str
    old_app_name_snake_case: str
    new_app_name_snake_case: str
    version: str = DEFAULT_VERSION
    description: str | None = None
    icon_paths: Mapping[IconRole, Path] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def has_icons(self) -> bool:
        return bool(self.icon_paths)

    def reversed(self) -> RenameSpec:
        """The same rename pointing back at the old identity."""
        return RenameSpec(
            old_app_id=self.new_app_id,
            new_app_id=self.old_app_id,
            old_app_name=self.new_app_name,
            new_app_name=self.old_app_name,
            old_app_name_snake_case=self.new_app_name_snake_case,
            new_app_name_snake_case=self.old_app_name_snake_case,
            version=self.version,
            description=self.description,
            icon_paths=self.icon_paths,
        )


def snake_case(name: str) -> str:
    """Derive the package-style name from a display name.

    - lowercase
    - replace runs of non [a-z0-9] with a single '_'
    - trim leading/trailing '_'
    """
    s = (name or "").strip().lower()
    s = _NON_ALNUM_RE.sub("_", s)
    return s.strip("_")


def pascal_case(snake: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in snake.split("_") if part)


def identifier_name(name: str, snake: str) -> str:
    """The form of a display name used inside Dart/Kotlin identifiers.

    A name that already reads as a PascalCase identifier (``TaskFlow``) is kept
    as typed; anything else is rebuilt from its snake_case form.
    """
    if _PASCAL_NAME_RE.match(name):
        return name
    return pascal_case(snake)


def is_valid_version(version: str) -> bool:
    return bool(_VERSION_RE.match(version or ""))


def _app_id_problem(app_id: str) -> str | None:
    if not app_id:
        return "is required"
    segments = app_id.split(".")
    if len(segments) < 2:
        return "needs at least two dot-separated segments (e.g. com.example.app)"
    for seg in segments:
        if not _SEGMENT_RE.match(seg):
            return f"segment {seg!r} must match [a-z][a-z0-9]*"
    return None


def _validate_name(field_name: str, raw: str | None) -> tuple[str, str]:
    name = (raw or "").strip()
    if not name:
        raise RenameValidationError(field_name, "is required")
    snake = snake_case(name)
    if not snake:
        raise RenameValidationError(field_name, f"{name!r} has no letters or digits")
    if not snake[0].isalpha():
        raise RenameValidationError(
            field_name, f"{name!r} must start with a letter (package name would be {snake!r})"
        )
    return name, snake


def _validate_app_id(field_name: str, raw: str | None) -> str:
    app_id = (raw or "").strip()
    problem = _app_id_problem(app_id)
    if problem is not None:
        raise RenameValidationError(field_name, f"{app_id!r} {problem}" if app_id else problem)
    return app_id


def _resolve_icons(
    inputs: Mapping[IconRole, str], *, project_root: Path
) -> dict[IconRole, Path]:
    resolved: dict[IconRole, Path] = {}
    problems: list[str] = []
    for role, raw in inputs.items():
        p = Path(raw).expanduser()
        if not p.is_absolute():
            p = project_root / p
        if not p.is_file():
            problems.append(f"{role}: {raw} does not exist")
            continue
        if not os.access(p, os.R_OK):
            problems.append(f"{role}: {raw} is not readable")
            continue
        resolved[role] = p.resolve()
    if problems:
        raise RenameValidationError(
            "icons", f"{len(problems)} icon path(s) unusable", problems
        )
    return resolved


def validate_rename_request(request: RenameRequest, *, project_root: Path) -> RenameSpec:
    """Turn raw user input into a RenameSpec, or raise on the first bad field.

    Pure apart from checking that icon files exist.
    """
    new_name, new_snake = _validate_name("name", request.name)
    new_app_id = _validate_app_id("app_id", request.app_id)
    old_app_id = _validate_app_id("old_app_id", request.old_app_id or DEFAULT_APP_ID)
    old_name, old_snake = _validate_name("old_name", request.old_name or DEFAULT_APP_NAME)

    version = (request.version or "").strip() or DEFAULT_VERSION
    if not is_valid_version(version):
        raise RenameValidationError(
            "version", f"{version!r} must look like MAJOR.MINOR.PATCH or MAJOR.MINOR.PATCH+BUILD"
        )

    icons = _resolve_icons(request.icon_inputs(), project_root=project_root)
    description = (request.description or "").strip() or None

    return RenameSpec(
        old_app_id=old_app_id,
        new_app_id=new_app_id,
        old_app_name=old_name,
        new_app_name=new_name,
        old_app_name_snake_case=old_snake,
        new_app_name_snake_case=new_snake,
        version=version,
        description=description,
        icon_paths=MappingProxyType(icons),
    )
