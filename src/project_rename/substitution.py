from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from src.project_rename.config import MANIFEST_NAME, PLATFORM_DIRS, PRUNE_DIRS, SOURCE_DIRS
from src.project_rename.files import atomic_write_bytes, decode_text
from src.project_rename.validation import identifier_name

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Iterator

    from src.project_rename.validation import RenameSpec

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"^\w+$")


@dataclass(frozen=True)
class SubstitutionRule:
    source: str
    target: str
    # Used instead of target when the match is glued to identifier characters,
    # e.g. PurplestackApp -> TaskFlowApp rather than "Task FlowApp".
    identifier_target: str | None = None
    # Why a plain (non-identifier) replacement by this rule can't be undone.
    irreversible: str | None = None

    @property
    def is_noop(self) -> bool:
        return self.source == self.target and self.identifier_target in (None, self.target)


def _touches_identifier(m: re.Match[str]) -> bool:
    s = m.string
    before = s[m.start() - 1] if m.start() > 0 else ""
    after = s[m.end()] if m.end() < len(s) else ""
    return any(c.isalnum() or c == "_" for c in (before, after))


class SubstitutionPlan:
    """An ordered list of literal replacements.

    Earlier rules take priority. A rule whose source is a prefix of a later
    rule's source would claim the start of that longer token first, so such an
    order is rejected. A source found further inside a later one is fine: the
    scan reaches the longer token's start first.
    """

    def __init__(self, rules: Iterable[SubstitutionRule]) -> None:
        kept: list[SubstitutionRule] = []
        seen: set[str] = set()
        for r in rules:
            if not r.source or r.is_noop or r.source in seen:
                continue
            seen.add(r.source)
            kept.append(r)

        for i, earlier in enumerate(kept):
            for later in kept[i + 1 :]:
                if later.source.startswith(earlier.source):
                    raise ValueError(
                        f"rule {earlier.source!r} must come after {later.source!r}"
                    )

        self.rules: tuple[SubstitutionRule, ...] = tuple(kept)
        self._by_source = {r.source: r for r in kept}
        self._pattern = (
            re.compile("|".join(re.escape(r.source) for r in kept)) if kept else None
        )

    def __len__(self) -> int:
        return len(self.rules)

    def apply(self, text: str) -> tuple[str, int]:
        """Replace every occurrence in one left-to-right scan.

        At any position the earliest matching rule wins, and replaced text is
        never rescanned, so a target can't be mangled by a later rule.
        """
        if self._pattern is None:
            return text, 0
        count = 0

        def _sub(m: re.Match[str]) -> str:
            nonlocal count
            count += 1
            rule = self._by_source[m.group(0)]
            if rule.identifier_target is not None and _touches_identifier(m):
                return rule.identifier_target
            return rule.target

        return self._pattern.sub(_sub, text), count

    def ambiguities(self, text: str) -> list[str]:
        """Reasons the rewrite of ``text`` may not be exact or reversible.

        - a bare word-like source embedded inside a longer word
        - a target that already occurs before substitution
        - a replacement that a reverse rename can't tell apart from another
        """
        out: list[str] = []
        if self._pattern is not None:
            flagged: set[str] = set()
            for m in self._pattern.finditer(text):
                rule = self._by_source[m.group(0)]
                if not rule.irreversible or rule.source in flagged or _touches_identifier(m):
                    continue
                flagged.add(rule.source)
                out.append(f"{rule.source!r} -> {rule.target!r}: {rule.irreversible}")
        for r in self.rules:
            if _WORD_RE.match(r.source):
                embedded = re.compile(
                    rf"(?<=[A-Za-z0-9]){re.escape(r.source)}|{re.escape(r.source)}(?=[a-z0-9])"
                )
                if embedded.search(text):
                    out.append(f"{r.source!r} appears inside a longer word")
            for target in {r.target, r.identifier_target or r.target}:
                if target in text:
                    out.append(f"{target!r} already present")
        return out


def namespace_prefix(app_id: str) -> str:
    return app_id.rsplit(".", 1)[0]


def build_rules(spec: RenameSpec) -> list[SubstitutionRule]:
    """Rules in mandated order.

    full id, id as path, display name, PascalCase name, snake_case, prefix.
    """
    rules = [
        SubstitutionRule(spec.old_app_id, spec.new_app_id),
        SubstitutionRule(spec.old_app_id.replace(".", "/"), spec.new_app_id.replace(".", "/")),
    ]
    old_pascal = identifier_name(spec.old_app_name, spec.old_app_name_snake_case)
    new_pascal = identifier_name(spec.new_app_name, spec.new_app_name_snake_case)
    # A lowercase single-word display name is indistinguishable from its
    # snake_case form; treat those occurrences as identifiers.
    if spec.old_app_name != spec.old_app_name_snake_case:
        irreversible = None
        if spec.new_app_name == spec.new_app_name_snake_case:
            irreversible = "display name and package name coincide"
        rules.append(
            SubstitutionRule(
                spec.old_app_name,
                spec.new_app_name,
                identifier_target=new_pascal,
                irreversible=irreversible,
            )
        )
    if old_pascal not in (spec.old_app_name, spec.old_app_name_snake_case):
        rules.append(SubstitutionRule(old_pascal, new_pascal))
    rules.append(
        SubstitutionRule(spec.old_app_name_snake_case, spec.new_app_name_snake_case)
    )

    old_segments = spec.old_app_id.split(".")
    new_segments = spec.new_app_id.split(".")
    if len(old_segments) == len(new_segments):
        rules.append(
            SubstitutionRule(namespace_prefix(spec.old_app_id), namespace_prefix(spec.new_app_id))
        )
    return rules


def build_plan(spec: RenameSpec) -> SubstitutionPlan:
    return SubstitutionPlan(build_rules(spec))


@dataclass(frozen=True)
class FileChangeRecord:
    path: str
    changed: bool = False
    skipped: bool = False
    ambiguous: bool = False
    replacements: int = 0
    notes: tuple[str, ...] = ()
    error: str | None = None


@dataclass
class TreeReport:
    records: list[FileChangeRecord] = field(default_factory=list)

    @property
    def visited(self) -> int:
        return len(self.records)

    @property
    def changed(self) -> int:
        return sum(1 for r in self.records if r.changed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.records if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.records if r.error is not None)

    @property
    def ambiguous_paths(self) -> list[str]:
        return [r.path for r in self.records if r.ambiguous]


def _is_excluded(path: Path, excludes: list[Path]) -> bool:
    return any(ex == path or ex in path.parents for ex in excludes)


def iter_candidate_files(root: Path, *, excludes: list[Path]) -> Iterator[Path]:
    """Yield regular files to rewrite, in a stable order.

    Root-level files plus everything below the platform and source dirs. The
    manifest, symlinks, excluded subtrees and build caches are never yielded.
    """
    root = root.resolve()
    manifest = root / MANIFEST_NAME

    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.is_symlink() or not entry.is_file():
            continue
        if entry == manifest or _is_excluded(entry, excludes):
            continue
        yield entry

    for name in (*SOURCE_DIRS, *PLATFORM_DIRS):
        base = root / name
        if base.is_symlink() or not base.is_dir() or _is_excluded(base, excludes):
            continue
        for dirpath, dirs, files in os.walk(base, followlinks=False):
            current = Path(dirpath)
            dirs[:] = sorted(
                d
                for d in dirs
                if d not in PRUNE_DIRS and not _is_excluded(current / d, excludes)
            )
            for fn in sorted(files):
                full = current / fn
                if full.is_symlink() or not full.is_file():
                    continue
                yield full


def rewrite_file(
    path: Path, plan: SubstitutionPlan, *, root: Path, dry_run: bool = False
) -> FileChangeRecord:
    rel = path.relative_to(root).as_posix()
    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Could not read %s: %s", rel, exc)
        return FileChangeRecord(path=rel, error=str(exc))

    text = decode_text(payload)
    if text is None:
        logger.debug("Skipping binary file %s", rel)
        return FileChangeRecord(path=rel, skipped=True)

    notes = plan.ambiguities(text)
    updated, count = plan.apply(text)
    if updated == text:
        return FileChangeRecord(path=rel, ambiguous=bool(notes), notes=tuple(notes))

    if not dry_run:
        try:
            atomic_write_bytes(path, updated.encode("utf-8"))
        except OSError as exc:
            logger.warning("Could not write %s: %s", rel, exc)
            return FileChangeRecord(path=rel, error=str(exc))
    logger.debug("Rewrote %s (%d replacements)", rel, count)
    return FileChangeRecord(
        path=rel,
        changed=True,
        ambiguous=bool(notes),
        replacements=count,
        notes=tuple(notes),
    )


def substitute_tree(
    root: Path,
    plan: SubstitutionPlan,
    *,
    excludes: list[Path],
    dry_run: bool = False,
) -> TreeReport:
    root = root.resolve()
    report = TreeReport()
    for path in iter_candidate_files(root, excludes=excludes):
        report.records.append(rewrite_file(path, plan, root=root, dry_run=dry_run))

    logger.info(
        "Visited %d files: %d changed, %d binary skipped, %d failed",
        report.visited,
        report.changed,
        report.skipped,
        report.failed,
    )
    for rel in report.ambiguous_paths:
        logger.warning("Review %s: identifiers overlap with unrelated text", rel)
    return report
