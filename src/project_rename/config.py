from __future__ import annotations

import logging
import os
import shlex
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Identity the template ships with; these are the "old" values on a first rename.
DEFAULT_APP_ID = "com.example.purplestack"
DEFAULT_APP_NAME = "Purplestack"
DEFAULT_VERSION = "0.1.0"

MANIFEST_NAME = "pubspec.yaml"

PLATFORM_DIRS = ("android", "ios", "macos", "linux", "windows", "web")
SOURCE_DIRS = ("lib", "test", "integration_test")

# Never descend into these; they are caches or build outputs keyed by the old identity.
PRUNE_DIRS = frozenset(
    {
        ".git",
        ".dart_tool",
        ".gradle",
        ".idea",
        ".symlinks",
        "Pods",
        "build",
        "ephemeral",
        "node_modules",
    }
)


def _env_str(name: str) -> str:
    return str(os.environ.get(name) or "").strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using default %d", name, raw, default)
        return int(default)


def log_level() -> str:
    v = _env_str("PROJECT_RENAME_LOG_LEVEL").upper()
    return v if v in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"


def command_timeout_s() -> int:
    return max(1, _env_int("PROJECT_RENAME_COMMAND_TIMEOUT_S", 900))


def flutter_command() -> list[str]:
    """Return the argv prefix used to invoke Flutter.

    PROJECT_RENAME_FLUTTER_CMD wins; otherwise prefer the fvm-pinned SDK when
    fvm is installed.
    """
    raw = _env_str("PROJECT_RENAME_FLUTTER_CMD")
    if raw:
        return shlex.split(raw)
    if shutil.which("fvm") is not None:
        return ["fvm", "flutter"]
    return ["flutter"]


def tool_install_dir() -> Path:
    # src/project_rename/config.py -> checkout root of this tool.
    return Path(__file__).resolve().parents[2]


def scan_excludes(project_root: Path) -> list[Path]:
    """Absolute paths the tree walk must never enter.

    The tool's own checkout is always excluded so a copy vendored inside the
    project (e.g. under tools/) cannot rewrite itself.
    """
    root = project_root.resolve()
    out: list[Path] = []

    tool_dir = tool_install_dir()
    if tool_dir != root and root in tool_dir.parents:
        out.append(tool_dir)
    else:
        # Running from the project root itself: protect at least the package.
        out.append(Path(__file__).resolve().parent)

    raw = _env_str("PROJECT_RENAME_EXCLUDES")
    for part in raw.split(","):
        p = part.strip().strip("/")
        if p:
            out.append((root / p).resolve())
    return out
