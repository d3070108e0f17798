from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from src.project_rename.android import Relocation, relocate_android_sources
from src.project_rename.commands import CommandRunner, StepWarning, SubprocessRunner
from src.project_rename.config import scan_excludes
from src.project_rename.icons import ManifestRestoreError, generate_icons
from src.project_rename.manifest import ManifestError, read_manifest, update_manifest_file
from src.project_rename.refresh import refresh_dependencies
from src.project_rename.substitution import (
    SubstitutionPlan,
    TreeReport,
    build_plan,
    substitute_tree,
)
from src.project_rename.validation import (
    RenameRequest,
    RenameSpec,
    RenameValidationError,
    validate_rename_request,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_INVALID = 2
EXIT_RESTORE_FAILED = 3


class Phase(str, Enum):
    VALIDATING = "validating"
    EDITING_MANIFEST = "editing_manifest"
    SUBSTITUTING_TREE = "substituting_tree"
    REFRESHING_DEPENDENCIES = "refreshing_dependencies"
    GENERATING_ICONS = "generating_icons"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RenameOutcome:
    phase: Phase = Phase.VALIDATING
    exit_code: int = EXIT_OK
    spec: RenameSpec | None = None
    tree: TreeReport | None = None
    manifest_changed: bool = False
    relocations: list[Relocation] = field(default_factory=list)
    warnings: list[StepWarning] = field(default_factory=list)
    error: str | None = None
    failed_in: Phase | None = None
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.phase == Phase.DONE


class FileCounts(BaseModel):
    visited: int = 0
    changed: int = 0
    skipped: int = 0
    failed: int = 0


class WarningItem(BaseModel):
    step: str
    message: str


class RenameReport(BaseModel):
    phase: str
    exit_code: int
    dry_run: bool = False
    error: str | None = None
    failed_in: str | None = None
    app_id: str | None = None
    name: str | None = None
    package_name: str | None = None
    version: str | None = None
    manifest_changed: bool = False
    files: FileCounts = FileCounts()
    changed_files: list[str] = []
    skipped_files: list[str] = []
    ambiguous_files: list[str] = []
    relocated: list[str] = []
    warnings: list[WarningItem] = []

    @classmethod
    def from_outcome(cls, outcome: RenameOutcome) -> RenameReport:
        tree = outcome.tree or TreeReport()
        spec = outcome.spec
        return cls(
            phase=outcome.phase.value,
            exit_code=outcome.exit_code,
            dry_run=outcome.dry_run,
            error=outcome.error,
            failed_in=outcome.failed_in.value if outcome.failed_in else None,
            app_id=spec.new_app_id if spec else None,
            name=spec.new_app_name if spec else None,
            package_name=spec.new_app_name_snake_case if spec else None,
            version=spec.version if spec else None,
            manifest_changed=outcome.manifest_changed,
            files=FileCounts(
                visited=tree.visited,
                changed=tree.changed,
                skipped=tree.skipped,
                failed=tree.failed,
            ),
            changed_files=[r.path for r in tree.records if r.changed],
            skipped_files=[r.path for r in tree.records if r.skipped],
            ambiguous_files=tree.ambiguous_paths,
            relocated=[f"{r.source} -> {r.destination}" for r in outcome.relocations],
            warnings=[WarningItem(step=w.step, message=w.message) for w in outcome.warnings],
        )


class RenameCoordinator:
    """Sequence the rename phases and collect a single outcome.

    Only validation (and reading the manifest) happens before the first write;
    a failure there leaves the tree untouched. Later failures are reported
    but already-applied edits stay in place.
    """

    def __init__(
        self,
        project_root: Path,
        *,
        runner: CommandRunner | None = None,
        dry_run: bool = False,
        skip_refresh: bool = False,
    ) -> None:
        self._root = project_root.resolve()
        self._runner = runner or SubprocessRunner()
        self._dry_run = dry_run
        self._skip_refresh = skip_refresh

    def _enter(self, outcome: RenameOutcome, phase: Phase) -> None:
        logger.debug("phase %s -> %s", outcome.phase.value, phase.value)
        outcome.phase = phase

    def _fail(self, outcome: RenameOutcome, exit_code: int, error: str) -> RenameOutcome:
        outcome.failed_in = outcome.phase
        outcome.phase = Phase.FAILED
        outcome.exit_code = exit_code
        outcome.error = error
        return outcome

    def run(self, request: RenameRequest) -> RenameOutcome:
        outcome = RenameOutcome(dry_run=self._dry_run)

        self._enter(outcome, Phase.VALIDATING)
        try:
            spec = validate_rename_request(request, project_root=self._root)
            plan = self._plan(spec)
            read_manifest(self._root)
        except RenameValidationError as exc:
            for p in exc.problems:
                logger.error("  %s", p)
            return self._fail(outcome, EXIT_INVALID, str(exc))
        except (ManifestError, OSError) as exc:
            return self._fail(outcome, EXIT_IO_ERROR, str(exc))
        outcome.spec = spec
        logger.info(
            "Renaming %s (%s) -> %s (%s)",
            spec.old_app_name,
            spec.old_app_id,
            spec.new_app_name,
            spec.new_app_id,
        )

        self._enter(outcome, Phase.EDITING_MANIFEST)
        try:
            update = update_manifest_file(self._root, spec, dry_run=self._dry_run)
        except (ManifestError, OSError) as exc:
            return self._fail(outcome, EXIT_IO_ERROR, str(exc))
        outcome.manifest_changed = update.changed

        self._enter(outcome, Phase.SUBSTITUTING_TREE)
        try:
            outcome.tree = substitute_tree(
                self._root,
                plan,
                excludes=scan_excludes(self._root),
                dry_run=self._dry_run,
            )
            moved, warnings = relocate_android_sources(
                self._root,
                old_app_id=spec.old_app_id,
                new_app_id=spec.new_app_id,
                dry_run=self._dry_run,
            )
        except OSError as exc:
            logger.exception("Tree rewrite aborted")
            return self._fail(outcome, EXIT_IO_ERROR, str(exc))
        outcome.relocations.extend(moved)
        outcome.warnings.extend(warnings)

        if self._dry_run:
            if spec.has_icons:
                logger.info("Dry run: would generate icons for %s", ", ".join(spec.icon_paths))
            self._enter(outcome, Phase.DONE)
            return outcome

        self._enter(outcome, Phase.REFRESHING_DEPENDENCIES)
        if self._skip_refresh:
            logger.info("Skipping dependency refresh")
        else:
            outcome.warnings.extend(refresh_dependencies(self._root, self._runner))

        if spec.has_icons:
            self._enter(outcome, Phase.GENERATING_ICONS)
            try:
                outcome.warnings.extend(generate_icons(self._root, spec, self._runner))
            except ManifestRestoreError as exc:
                logger.critical("%s", exc)
                return self._fail(outcome, EXIT_RESTORE_FAILED, str(exc))
            except Exception as exc:
                # The manifest is already restored; the rename itself stands.
                logger.exception("Icon generation failed")
                outcome.warnings.append(StepWarning(step="icons", message=str(exc)))

        self._enter(outcome, Phase.DONE)
        return outcome

    def _plan(self, spec: RenameSpec) -> SubstitutionPlan:
        try:
            return build_plan(spec)
        except ValueError as exc:
            raise RenameValidationError(
                "name", f"identifiers overlap so they can't be rewritten safely ({exc})"
            ) from exc
