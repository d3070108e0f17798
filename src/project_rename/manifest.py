from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from src.project_rename.config import MANIFEST_NAME
from src.project_rename.files import atomic_write_bytes, decode_text
from src.project_rename.validation import RenameSpec

logger = logging.getLogger(__name__)

_PLAIN_SCALAR_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.,()/+'-]*$")
# Plain scalars YAML would read as booleans/null.
_YAML_KEYWORDS = {"yes", "no", "true", "false", "null", "on", "off", "y", "n", "~"}
# Plain scalars YAML would read as numbers: ints, floats, hex/octal/binary
# and 1.1-style sexagesimal.
_YAML_NUMBER_RE = re.compile(
    r"^(?:\d[\d_]*(?:\.[\d_]*)?(?:[eE][-+]?\d+)?"
    r"|0[xob][0-9a-fA-F_]+"
    r"|\d[\d_]*(?::[0-5]?\d)+(?:\.[\d_]*)?)$"
)


class ManifestError(ValueError):
    pass


@dataclass(frozen=True)
class ManifestUpdate:
    path: Path
    changed: bool
    fields: tuple[str, ...]


def manifest_path(project_root: Path) -> Path:
    return project_root / MANIFEST_NAME


def _key_re(key: str) -> re.Pattern[str]:
    # Top-level key only (column 0), plus any indented continuation lines of a
    # folded/multi-line scalar.
    return re.compile(
        rf"^{re.escape(key)}[ \t]*:[^\r\n]*(?:\r?\n[ \t]+[^\r\n]*)*",
        re.MULTILINE,
    )


def yaml_scalar(value: str) -> str:
    v = value.strip()
    if (
        _PLAIN_SCALAR_RE.match(v)
        and v.lower() not in _YAML_KEYWORDS
        and not _YAML_NUMBER_RE.match(v)
    ):
        return v
    escaped = v.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _newline_of(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _set_key(text: str, key: str, value: str, *, insert_after: re.Match[str] | None) -> str:
    line = f"{key}: {yaml_scalar(value)}"
    m = _key_re(key).search(text)
    if m is not None:
        return text[: m.start()] + line + text[m.end() :]
    if insert_after is None:
        raise ManifestError(f"{MANIFEST_NAME} has no top-level {key!r} key")
    nl = _newline_of(text)
    pos = insert_after.end()
    return text[:pos] + nl + line + text[pos:]


def edit_manifest(text: str, spec: RenameSpec) -> str:
    """Return ``text`` with only the name, description and version keys rewritten.

    Everything else (comments, dependency blocks, nested keys that happen to
    be called ``name``) is left byte-for-byte intact. A missing description or
    version key is inserted right after ``name``.
    """
    if _key_re("name").search(text) is None:
        raise ManifestError(f"{MANIFEST_NAME} has no top-level 'name' key")

    out = _set_key(text, "name", spec.new_app_name_snake_case, insert_after=None)

    if spec.description is not None:
        anchor = _key_re("name").search(out)
        out = _set_key(out, "description", spec.description, insert_after=anchor)

    # Version is always written; the description may have just been inserted
    # after name, so anchor on whichever comes last.
    anchor = _key_re("description").search(out) or _key_re("name").search(out)
    out = _set_key(out, "version", spec.version, insert_after=anchor)
    return out


def read_manifest(project_root: Path) -> str:
    path = manifest_path(project_root)
    try:
        payload = path.read_bytes()
    except FileNotFoundError as exc:
        raise ManifestError(f"{path} not found; is this a Flutter project root?") from exc
    text = decode_text(payload)
    if text is None:
        raise ManifestError(f"{path} is not valid UTF-8 text")
    return text


def update_manifest_file(
    project_root: Path, spec: RenameSpec, *, dry_run: bool = False
) -> ManifestUpdate:
    path = manifest_path(project_root)
    original = read_manifest(project_root)
    updated = edit_manifest(original, spec)

    fields = ["name", "version"]
    if spec.description is not None:
        fields.insert(1, "description")

    changed = updated != original
    if changed and not dry_run:
        atomic_write_bytes(path, updated.encode("utf-8"))
    logger.info(
        "%s %s (%s)",
        "Would update" if dry_run else "Updated",
        path,
        ", ".join(fields),
    )
    return ManifestUpdate(path=path, changed=changed, fields=tuple(fields))
